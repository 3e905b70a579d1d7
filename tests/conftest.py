import os
import tempfile
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set up minimal test environment BEFORE any imports from mdindex
# mdindex.config loads CONFIG_PATH at import time
_tmp_dir = tempfile.TemporaryDirectory(prefix="pytest_config_")
_config_file = Path(_tmp_dir.name) / "config.yaml"
_config_file.write_text(
    """
auth:
  token: test-token-123

logging:
  level: INFO
  json: false
"""
)
os.environ["CONFIG_PATH"] = str(_config_file)


def write_markdown(path: Path, content: str = "") -> Path:
    """Create a Markdown file (and its parents) for tests."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def commands_dir(tmp_path: Path) -> Path:
    """Command directory with three commands, one nested."""
    root = tmp_path / "commands"
    write_markdown(
        root / "deploy.md",
        "---\ndescription: Deploy the app\nargument-hint: <env>\n---\n# Deploy\n",
    )
    write_markdown(root / "build.md", "---\ndescription: Build everything\n---\n")
    write_markdown(root / "nested" / "lint.md", "---\ndescription: Lint files\n---\n")
    return root


@pytest.fixture
def agents_dir(tmp_path: Path) -> Path:
    """Agent directory with two agents."""
    root = tmp_path / "agents"
    write_markdown(root / "reviewer.md", "---\ndescription: Reviews code\n---\n")
    write_markdown(root / "planner.md", "---\ndescription: Plans work\n---\n")
    return root


@pytest.fixture
def md_index(commands_dir: Path, agents_dir: Path):
    """MdIndex over the command and agent fixture directories."""
    from mdindex.models.entry import Entry, EntryType
    from mdindex.services.md_index import MdIndex

    return MdIndex(
        entries=[
            Entry(
                name="{basename}",
                type=EntryType.COMMAND,
                description="{frontmatter@description}",
                path=str(commands_dir),
                pattern="*.md",
                argument_hint="{frontmatter@argument-hint}",
            ),
            Entry(
                name="agent-{basename}",
                type=EntryType.MENTION,
                description="{frontmatter@description}",
                path=str(agents_dir),
                pattern="*.md",
                max_suggestions=5,
            ),
        ]
    )


@pytest.fixture
def test_app(md_index) -> FastAPI:
    """Test app without the lifespan, serving the fixture index."""
    from mdindex.api import config, health, index
    from mdindex.dependencies import get_md_index
    from mdindex.middleware.request_id import RequestIDMiddleware
    from mdindex.services.container import init_container
    from mdindex.services.health import HealthCheckService

    init_container(
        md_index=md_index,
        health_service=HealthCheckService(md_index=md_index, version="test-version"),
    )

    app = FastAPI(title="mdindex test")
    app.add_middleware(RequestIDMiddleware)
    app.include_router(health.router)
    app.include_router(index.router)
    app.include_router(config.router)
    app.dependency_overrides[get_md_index] = lambda: md_index
    return app


@pytest.fixture
def client(test_app: FastAPI):
    with TestClient(test_app) as c:
        yield c


@pytest.fixture
def auth_headers():
    """Valid authorization headers."""
    return {"Authorization": "Bearer test-token-123"}
