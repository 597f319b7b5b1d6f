import pytest

from vadis_intake.analysis.features import (
    describe,
    feature_path,
    parse_feature_keys,
    parse_snapshot,
    unwrap_payload,
)
from vadis_intake.contracts.analysis import ALL_FEATURES, AnalysisResultSet, FeatureKey
from vadis_intake.contracts.project import (
    FieldIssue,
    ProjectCreate,
    ProjectDTO,
    coerce_project_id,
)
from vadis_intake.contracts.script import ScriptFile
from vadis_intake.errors import GENERIC_API_ERROR, APIError, DraftValidationError


class TestFeatures:
    def test_every_feature_is_described(self):
        fields = {describe(key).snapshot_field for key in ALL_FEATURES}
        assert len(ALL_FEATURES) == 8
        assert fields == {
            "scenes",
            "characters",
            "casting",
            "locations",
            "vfx",
            "productPlacement",
            "financial",
            "summary",
        }

    def test_feature_path(self):
        assert feature_path(FeatureKey.VFX_ANALYSIS) == "script-analysis/vfx_analysis"

    def test_unwrap_payload(self):
        assert unwrap_payload({"data": {"scenes": []}}) == {"scenes": []}
        assert unwrap_payload({"scenes": []}) == {"scenes": []}
        assert unwrap_payload({"data": None, "total": 0}) == {"data": None, "total": 0}

    def test_parse_snapshot_accepts_both_field_styles(self):
        snapshot = parse_snapshot(
            {"scenes": [], "vfx_analysis": {"shots": 3}, "summary": None, "casting": None}
        )
        assert snapshot == {
            FeatureKey.SCENE_EXTRACTION: [],
            FeatureKey.VFX_ANALYSIS: {"shots": 3},
        }
        assert parse_snapshot(["not", "a", "dict"]) == {}

    def test_parse_feature_keys(self):
        keys = parse_feature_keys(["VFX_analysis", "scene_extraction", "vfx_analysis"])
        assert keys == [FeatureKey.VFX_ANALYSIS, FeatureKey.SCENE_EXTRACTION]

        with pytest.raises(ValueError, match="Valid features"):
            parse_feature_keys(["vfx"])


class TestProjectContracts:
    def test_create_serializes_camel_case(self):
        draft = ProjectCreate(
            title="Night Train",
            funding_goal=5000,
            budget_range="under-1m",
            target_genres={"thriller", "drama"},
        )
        body = draft.model_dump(mode="json", by_alias=True, exclude_none=True)

        assert body["fundingGoal"] == 5000
        assert body["budgetRange"] == "under-1m"
        assert body["targetGenres"] == ["drama", "thriller"]
        assert body["projectType"] == "script_analysis"

    def test_dto_reads_backend_payload(self):
        project = ProjectDTO.model_validate(
            {"id": 7, "title": "Night Train", "fundingGoal": 5000, "isPublished": True}
        )
        assert project.funding_goal == 5000
        assert project.is_published

    def test_dto_rejects_blank_id(self):
        with pytest.raises(ValueError):
            ProjectDTO(id=" ", title="Night Train")

    @pytest.mark.parametrize(("raw", "expected"), [("42", 42), ("proj-9", "proj-9")])
    def test_coerce_project_id(self, raw, expected):
        assert coerce_project_id(raw) == expected

    def test_result_set_views(self):
        result = AnalysisResultSet(
            project_id=42,
            requested=list(ALL_FEATURES),
            results={FeatureKey.SCENE_EXTRACTION: []},
            errors={FeatureKey.VFX_ANALYSIS: "down"},
        )
        assert result.completed == [FeatureKey.SCENE_EXTRACTION]
        assert result.failed == [FeatureKey.VFX_ANALYSIS]


class TestScriptFile:
    def test_from_path(self, tmp_path):
        path = tmp_path / "pilot.pdf"
        path.write_bytes(b"%PDF-1.4")

        script = ScriptFile.from_path(path)

        assert script.filename == "pilot.pdf"
        assert script.size == 8
        assert script.mime_type == "application/pdf"

    def test_oversized_file_is_not_read(self, tmp_path):
        path = tmp_path / "epic.pdf"
        path.write_bytes(b"%PDF-1.4" + b"0" * 4096)

        script = ScriptFile.from_path(path, max_bytes=1024)

        assert script.size == 4104
        assert script.content == b""
        assert script.mime_type == "application/pdf"

    def test_unknown_extension(self):
        assert ScriptFile.from_bytes("pilot", b"x").mime_type == "application/octet-stream"


class TestErrors:
    def test_api_error_falls_back_to_generic_message(self):
        assert APIError(None, status_code=500).message == GENERIC_API_ERROR
        assert str(APIError("Title already taken")) == "Title already taken"

    def test_draft_validation_error_summary(self):
        error = DraftValidationError(
            [FieldIssue(field="title", reason="title required"), FieldIssue(field="x", reason="y")]
        )
        assert str(error) == "title required; y"
