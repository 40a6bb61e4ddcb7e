"""Tests for component handlers"""

import json

import pytest

from context_deploy.constants import ConflictStrategy, Platform, ErrorCode
from context_deploy.handlers import (
    ClaudeProjectHandler,
    ProseCollectionHandler,
    ScopedSettingsHandler,
    StructuredCollectionHandler,
    StructuredFileHandler,
    create_handler,
    render_front_matter,
    split_front_matter,
)
from context_deploy.models.options import DeploymentOptions, TargetContext
from context_deploy.services.conflict_resolver import ConflictResolver


@pytest.fixture
def target(home_dir, project_dir):
    return TargetContext(home_dir=home_dir, project_dir=project_dir)


def make(platform, component):
    return create_handler(platform, component, ConflictResolver())


def options(platform, **kwargs):
    kwargs.setdefault("conflict_strategy", ConflictStrategy.OVERWRITE)
    return DeploymentOptions(platform=platform, **kwargs)


class TestFrontMatter:
    def test_render_and_split(self):
        text = render_front_matter({"name": "product", "inclusion": "always"}, "# Product\n")

        assert text == "---\nname: product\ninclusion: always\n---\n\n# Product\n"
        assert split_front_matter(text) == ({"name": "product", "inclusion": "always"}, "# Product\n")

    def test_no_header(self):
        assert render_front_matter({}, "body") == "body\n"
        assert split_front_matter("body\n") == ({}, "body\n")

    def test_unterminated_header_is_body(self):
        text = "---\nname: x\nno end"
        assert split_front_matter(text) == ({}, text)


def test_registry_picks_handler_per_layout():
    assert isinstance(make(Platform.CLAUDE_CODE, "settings"), StructuredFileHandler)
    assert isinstance(make(Platform.CLAUDE_CODE, "agents"), ProseCollectionHandler)
    assert isinstance(make(Platform.CLAUDE_CODE, "project"), ClaudeProjectHandler)
    assert isinstance(make(Platform.KIRO_IDE, "settings"), ScopedSettingsHandler)
    assert isinstance(make(Platform.KIRO_IDE, "hooks"), StructuredCollectionHandler)
    assert isinstance(make(Platform.CURSOR_IDE, "ai-prompts"), ProseCollectionHandler)

    with pytest.raises(KeyError):
        make(Platform.CURSOR_IDE, "steering")


@pytest.mark.asyncio
async def test_structured_round_trip(target, home_dir):
    handler = make(Platform.CLAUDE_CODE, "settings")
    data = {"theme": "dark", "permissions": {"allow": ["Read", "Edit"]}, "nested": {"n": 1.5}}

    result = await handler.deploy(data, target, options(Platform.CLAUDE_CODE))

    path = home_dir / ".claude" / "settings.json"
    assert result.success
    assert result.deployed_files == [path]
    assert await handler.read(path) == data


@pytest.mark.asyncio
async def test_prose_collection_round_trip(target, project_dir):
    handler = make(Platform.KIRO_IDE, "steering")
    data = [{"name": "Tech Stack", "inclusion": "always", "content": "# Tech\n\nPython.\n"}]

    result = await handler.deploy(data, target, options(Platform.KIRO_IDE))

    path = project_dir / ".kiro" / "steering" / "tech-stack.md"
    assert result.deployed_files == [path]
    header, body = await handler.read(path)
    assert header == {"name": "Tech Stack", "inclusion": "always"}
    assert body == "# Tech\n\nPython.\n"


@pytest.mark.asyncio
async def test_scoped_settings_split_between_home_and_project(target, home_dir, project_dir):
    handler = make(Platform.CURSOR_IDE, "settings")
    data = {"global": {"editor.fontSize": 14}, "project": {"python.testing": "pytest"}}

    result = await handler.deploy(data, target, options(Platform.CURSOR_IDE))

    assert result.success
    assert json.loads((home_dir / ".cursor" / "User" / "settings.json").read_text()) == {"editor.fontSize": 14}
    assert json.loads((project_dir / ".cursor" / "settings.json").read_text()) == {"python.testing": "pytest"}


@pytest.mark.asyncio
async def test_plain_scoped_settings_are_global(target, home_dir, project_dir):
    handler = make(Platform.KIRO_IDE, "settings")

    await handler.deploy({"theme": "dark"}, target, options(Platform.KIRO_IDE))

    assert json.loads((home_dir / ".kiro" / "settings.json").read_text()) == {"theme": "dark"}
    assert not (project_dir / ".kiro" / "settings.json").exists()


@pytest.mark.asyncio
async def test_structured_collection_adds_item_name(target, project_dir):
    handler = make(Platform.KIRO_IDE, "hooks")

    await handler.deploy({"On Save": {"event": "file-save"}}, target, options(Platform.KIRO_IDE))

    path = project_dir / ".kiro" / "hooks" / "on-save.json"
    assert json.loads(path.read_text()) == {"name": "On Save", "event": "file-save"}


@pytest.mark.asyncio
async def test_item_names_cannot_escape_directory(target, project_dir):
    handler = make(Platform.KIRO_IDE, "hooks")

    result = await handler.deploy([{"name": "../../evil", "event": "x"}], target, options(Platform.KIRO_IDE))

    hooks_dir = project_dir / ".kiro" / "hooks"
    assert result.success
    assert [p.parent for p in result.deployed_files] == [hooks_dir]


@pytest.mark.asyncio
async def test_claude_project_files(target, project_dir):
    handler = make(Platform.CLAUDE_CODE, "project")
    data = {
        "settings": {"model": "sonnet"},
        "instructions": "# Project\n\nUse pytest.\n",
        "mcp": {"mcpServers": {}},
    }

    result = await handler.deploy(data, target, options(Platform.CLAUDE_CODE))

    assert result.success
    assert json.loads((project_dir / ".claude" / "settings.json").read_text()) == {"model": "sonnet"}
    assert (project_dir / "CLAUDE.md").read_text() == "# Project\n\nUse pytest.\n"
    assert json.loads((project_dir / ".mcp.json").read_text()) == {"mcpServers": {}}


@pytest.mark.asyncio
async def test_invalid_data_is_a_component_error(target):
    handler = make(Platform.CLAUDE_CODE, "settings")

    result = await handler.deploy(["not", "a", "mapping"], target, options(Platform.CLAUDE_CODE))

    assert not result.success
    assert result.errors[0].code == ErrorCode.COMPONENT_DEPLOYMENT_ERROR


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(target, home_dir):
    handler = make(Platform.CLAUDE_CODE, "settings")

    result = await handler.deploy({"theme": "dark"}, target, options(Platform.CLAUDE_CODE, dry_run=True))

    assert result.deployed_files == [home_dir / ".claude" / "settings.json"]
    assert list(home_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_redeploying_identical_content_reports_no_conflict(target):
    handler = make(Platform.KIRO_IDE, "steering")
    data = {"product": {"inclusion": "always", "content": "# Product\n"}}
    opts = options(Platform.KIRO_IDE, conflict_strategy=ConflictStrategy.PROMPT)

    await handler.deploy(data, target, opts)
    second = await handler.deploy(data, target, opts)

    assert second.success
    assert second.conflicts == []
    assert second.warnings == []
    assert len(second.deployed_files) == 1


@pytest.mark.asyncio
async def test_prose_merge_keeps_header_and_merges_body(target, project_dir):
    handler = make(Platform.KIRO_IDE, "specs")
    path = project_dir / ".kiro" / "specs" / "api.md"
    path.parent.mkdir(parents=True)
    path.write_text("---\nname: api\n---\n\n- [x] Build API\n- [ ] Write docs\n")
    opts = options(Platform.KIRO_IDE, conflict_strategy=ConflictStrategy.MERGE,
                   merge_strategy="task-status-preserve")

    result = await handler.deploy({"api": "- [ ] Build API\n- [ ] Write docs\n- [ ] Ship\n"}, target, opts)

    assert result.success
    assert path.read_text() == "---\nname: api\n---\n\n- [x] Build API\n- [ ] Write docs\n- [ ] Ship\n"


@pytest.mark.asyncio
async def test_skip_counts_skipped_file(target, home_dir):
    path = home_dir / ".claude" / "settings.json"
    path.parent.mkdir(parents=True)
    path.write_text('{"theme": "light"}\n')
    handler = make(Platform.CLAUDE_CODE, "settings")

    result = await handler.deploy({"theme": "dark", "fontSize": 14}, target,
                                  options(Platform.CLAUDE_CODE, conflict_strategy=ConflictStrategy.SKIP))

    assert result.skipped_files == [path]
    assert len(result.warnings) == 1
    assert path.read_text() == '{"theme": "light"}\n'
