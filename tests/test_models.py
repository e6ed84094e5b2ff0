"""Unit tests for coordinates and layer plans (conjure.models)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from conjure.models import (
    LANGUAGE_PRIVATE_PRUNE_SETS,
    SHARED_PRIVATE_PRUNE_SET,
    LayerPlan,
    SourceKind,
    TemplateCoordinate,
    private_prune_set,
)


class TestTemplateCoordinate:
    @pytest.mark.unit
    def test_parts_and_subpath(self):
        coord = TemplateCoordinate(language="typescript", item="package", template="basic")
        assert coord.parts == ("typescript", "package", "basic")
        assert coord.subpath == "typescript/package/basic"

    @pytest.mark.unit
    def test_language_only(self):
        coord = TemplateCoordinate(language="shared")
        assert coord.parts == ("shared",)
        assert coord.source is SourceKind.LOCAL

    @pytest.mark.unit
    def test_cache_key_includes_source(self):
        local = TemplateCoordinate(language="python", item="package")
        remote = local.with_source(SourceKind.REMOTE)
        assert local.cache_key == "local:templates/python/package"
        assert remote.cache_key == "remote:templates/python/package"
        assert local != remote

    @pytest.mark.unit
    def test_describe(self):
        coord = TemplateCoordinate(source="remote", language="go")
        assert coord.describe() == "templates/go (remote)"

    @pytest.mark.unit
    def test_hashable_and_frozen(self):
        coord = TemplateCoordinate(language="go")
        assert {coord, TemplateCoordinate(language="go")} == {coord}
        with pytest.raises(ValidationError):
            coord.language = "rust"

    @pytest.mark.unit
    @pytest.mark.parametrize("segment", ["", ".", "..", "a/b", "a\\b"])
    def test_invalid_segments_rejected(self, segment):
        with pytest.raises(ValidationError):
            TemplateCoordinate(language="python", item=segment)

    @pytest.mark.unit
    def test_template_requires_item(self):
        with pytest.raises(ValidationError):
            TemplateCoordinate(language="python", template="basic")


class TestLayerPlan:
    @pytest.mark.unit
    def test_for_template_builds_four_layers(self):
        plan = LayerPlan.for_template("typescript", "basic")
        assert [c.subpath for c in plan.layers] == [
            "shared",
            "typescript/shared",
            "typescript/package/shared",
            "typescript/package/basic",
        ]
        assert plan.required_last is True

    @pytest.mark.unit
    def test_for_template_propagates_source_and_item(self):
        plan = LayerPlan.for_template("python", "cli", item="app", source=SourceKind.REMOTE)
        assert all(c.source is SourceKind.REMOTE for c in plan.layers)
        assert plan.layers[-1].subpath == "python/app/cli"

    @pytest.mark.unit
    def test_is_required(self):
        plan = LayerPlan.for_template("typescript", "basic")
        assert [plan.is_required(i) for i in range(4)] == [False, False, False, True]

    @pytest.mark.unit
    def test_coerce_sequence(self):
        coords = [TemplateCoordinate(language="shared")]
        plan = LayerPlan.coerce(coords)
        assert plan.layers == tuple(coords)
        assert plan.required_last is False
        assert plan.is_required(0) is False

    @pytest.mark.unit
    def test_coerce_plan_passthrough(self):
        plan = LayerPlan.for_template("go", "basic")
        assert LayerPlan.coerce(plan) is plan


class TestPrivatePruneSet:
    @pytest.mark.unit
    def test_shared_names_apply_to_every_language(self):
        for language in ("typescript", "python", "go"):
            assert SHARED_PRIVATE_PRUNE_SET <= private_prune_set(language)

    @pytest.mark.unit
    def test_typescript_adds_marked_release_workflow(self):
        assert LANGUAGE_PRIVATE_PRUNE_SETS["typescript"] == frozenset({"release.marker.yml"})
        assert "release.marker.yml" in private_prune_set("typescript")
        assert "release.marker.yml" in private_prune_set("TypeScript")

    @pytest.mark.unit
    def test_other_languages_keep_release_workflow(self):
        assert private_prune_set("python") == SHARED_PRIVATE_PRUNE_SET
        assert "release.marker.yml" not in SHARED_PRIVATE_PRUNE_SET
        assert "CODE_OF_CONDUCT.md" in SHARED_PRIVATE_PRUNE_SET
