"""Tests for context and option models"""

import pytest

from context_deploy.api.exceptions import InvalidOptionsError
from context_deploy.constants import ConflictStrategy, MergeStrategy, Platform
from context_deploy.core.path_resolver import available_components
from context_deploy.models.context import Context
from context_deploy.models.options import DeploymentOptions


class TestContext:
    def test_components_and_extras(self, kiro_data):
        kiro_data["platforms"]["kiro-ide"]["experimental"] = {"flag": True}
        kiro_data["platforms"]["vim"] = {"rc": "set nu"}
        kiro_data["custom"] = [1, 2]

        context = Context.from_dict(kiro_data)

        bundle = context.bundle(Platform.KIRO_IDE)
        assert bundle.component_names() == ["settings", "steering", "specs", "hooks"]
        assert bundle.extras == {"experimental": {"flag": True}}
        assert context.extras["platforms"] == {"vim": {"rc": "set nu"}}

        round_trip = context.to_dict()
        assert round_trip["custom"] == [1, 2]
        assert round_trip["platforms"]["vim"] == {"rc": "set nu"}
        assert round_trip["platforms"]["kiro-ide"]["experimental"] == {"flag": True}

    def test_camel_case_metadata(self):
        context = Context.from_dict({"metadata": {"targetPlatforms": ["cursor-ide"], "specVersion": "1.2.0"}})

        assert context.metadata.target_platforms == ("cursor-ide",)
        assert context.metadata.spec_version == "1.2.0"

    def test_accessors_return_copies(self, kiro_context):
        steering = kiro_context.component_data(Platform.KIRO_IDE, "steering")
        steering.append({"name": "extra"})

        assert len(kiro_context.component_data(Platform.KIRO_IDE, "steering")) == 1

    def test_fingerprint_tracks_content(self, kiro_data):
        first = Context.from_dict(kiro_data).fingerprint()
        assert Context.from_dict(kiro_data).fingerprint() == first

        kiro_data["personal"]["name"] = "Other"
        assert Context.from_dict(kiro_data).fingerprint() != first

    @pytest.mark.parametrize("data", [[], "text", {"metadata": "x"}])
    def test_rejects_non_mappings(self, data):
        with pytest.raises(TypeError):
            Context.from_dict(data)


class TestDeploymentOptions:
    def test_strings_are_converted(self):
        options = DeploymentOptions(platform="cursor-ide", conflict_strategy="merge",
                                    merge_strategy="array-append")

        assert options.platform == Platform.CURSOR_IDE
        assert options.conflict_strategy == ConflictStrategy.MERGE
        assert options.merge_strategy == MergeStrategy.ARRAY_APPEND

    @pytest.mark.parametrize("kwargs", [
        {"platform": "emacs"},
        {"platform": "kiro-ide", "conflict_strategy": "ignore"},
        {"platform": "kiro-ide", "merge_strategy": "three-way"},
    ])
    def test_unknown_values(self, kwargs):
        with pytest.raises(InvalidOptionsError):
            DeploymentOptions(**kwargs)

    @pytest.mark.parametrize("kwargs", [
        {"components": ["steering"], "skip_components": ["steering"]},
        {"components": ["ai-prompts"]},
        {"lock_timeout": -1},
        {"max_concurrency": 0},
    ])
    def test_validate_rejects(self, kwargs):
        options = DeploymentOptions(platform=Platform.KIRO_IDE, **kwargs)

        with pytest.raises(InvalidOptionsError):
            options.validate(available_components(Platform.KIRO_IDE))

    def test_select_components(self):
        options = DeploymentOptions(platform=Platform.KIRO_IDE, skip_components=["specs"])

        assert options.select_components(["settings", "specs", "hooks"]) == ["settings", "hooks"]

    def test_needs_backup(self):
        assert DeploymentOptions(platform=Platform.KIRO_IDE, backup=True).needs_backup
        assert DeploymentOptions(platform=Platform.KIRO_IDE, conflict_strategy="backup").needs_backup
        assert not DeploymentOptions(platform=Platform.KIRO_IDE).needs_backup
