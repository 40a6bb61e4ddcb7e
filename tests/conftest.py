"""Shared fixtures"""

import copy
import logging

import pytest

from context_deploy.api.deployer import Deployer
from context_deploy.models.config import DeployConfig
from context_deploy.models.context import Context

KIRO_CONTEXT = {
    "metadata": {
        "title": "Sample workspace",
        "version": "1.0.0",
        "spec_version": "1.0.0",
        "target_platforms": ["kiro-ide"],
    },
    "personal": {"name": "Dev"},
    "platforms": {
        "kiro-ide": {
            "settings": {
                "global": {"theme": "dark"},
                "project": {"fontSize": 14},
            },
            "steering": [
                {"name": "product", "inclusion": "always", "content": "# Product\n\nA deployment tool.\n"},
            ],
            "specs": {
                "api": "# API\n\n- [ ] Build API\n- [ ] Write docs\n",
            },
            "hooks": [
                {"name": "lint-on-save", "event": "file-save", "description": "Run the linter"},
            ],
        }
    },
}

CLAUDE_CONTEXT = {
    "metadata": {
        "title": "Claude workspace",
        "target_platforms": ["claude-code"],
    },
    "platforms": {
        "claude-code": {
            "settings": {"theme": "dark", "permissions": {"allow": ["Read"]}},
            "agents": [
                {"name": "Code Reviewer", "description": "Reviews diffs", "content": "Review the diff.\n"},
            ],
            "commands": {"test": "Run the test suite.\n"},
            "project": {
                "instructions": "# Project\n\nUse pytest.\n",
                "mcp": {"mcpServers": {"docs": {"url": "http://localhost:8080"}}},
            },
        }
    },
}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.disable(logging.NOTSET)


@pytest.fixture
def home_dir(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path):
    return DeployConfig(
        backup_dir=str(tmp_path / "backups"),
        lock_dir=str(tmp_path / "locks"),
        lock_timeout=1.0,
        lock_retry_interval=0.02,
        retry_delay=0.01,
    )


@pytest.fixture
def deployer(config, home_dir, project_dir):
    return Deployer(config=config, home_dir=home_dir, project_dir=project_dir)


@pytest.fixture
def kiro_data():
    return copy.deepcopy(KIRO_CONTEXT)


@pytest.fixture
def claude_data():
    return copy.deepcopy(CLAUDE_CONTEXT)


@pytest.fixture
def kiro_context(kiro_data):
    return Context.from_dict(kiro_data)


@pytest.fixture
def claude_context(claude_data):
    return Context.from_dict(claude_data)
