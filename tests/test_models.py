"""
Tests for decoding API payloads.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from conftest import job_payload
from labci.models import Job, JobStatus, LintResult, PipelineInfo


class TestJobStatus:
    """Test the status enum."""

    def test_known_status(self):
        assert JobStatus("manual") is JobStatus.MANUAL

    def test_unknown_status_decodes_to_unknown(self):
        assert JobStatus("waiting_for_callback") is JobStatus.UNKNOWN

    def test_active_statuses(self):
        assert JobStatus.RUNNING.is_active
        assert JobStatus.PENDING.is_active
        assert not JobStatus.MANUAL.is_active
        assert not JobStatus.UNKNOWN.is_active


class TestJob:
    """Test the Job model."""

    def test_parses_api_payload(self):
        job = Job.model_validate(job_payload(12, "build", "success", 3))

        assert job.id == 12
        assert job.status is JobStatus.SUCCESS
        assert job.created_at == datetime(2024, 5, 1, 10, 0, 3, tzinfo=timezone.utc)
        assert job.pipeline_id == 77

    def test_new_status_string_is_accepted(self):
        payload = job_payload(1, "build", "brand_new_state", 1)

        job = Job.model_validate(payload)

        assert job.status is JobStatus.UNKNOWN

    def test_missing_pipeline(self):
        payload = job_payload(1, "build", "success", 1)
        del payload["pipeline"]

        assert Job.model_validate(payload).pipeline_id is None

    def test_created_at_is_required(self):
        payload = job_payload(1, "build", "success", 1)
        del payload["created_at"]

        with pytest.raises(ValidationError):
            Job.model_validate(payload)

    def test_extra_fields_ignored(self):
        payload = job_payload(1, "build", "success", 1)
        payload["runner"] = {"id": 5, "description": "shared"}

        assert Job.model_validate(payload).id == 1


class TestOtherModels:
    def test_pipeline_info_defaults(self):
        pipe = PipelineInfo.model_validate({"id": 3})

        assert pipe.status == ""
        assert pipe.created_at is None

    def test_lint_result_from_project_payload(self):
        result = LintResult.from_api({"valid": False, "errors": ["bad"], "warnings": [], "merged_yaml": None})

        assert not result.valid
        assert result.errors == ["bad"]

    def test_lint_result_from_legacy_payload(self):
        assert LintResult.from_api({"status": "valid", "errors": []}).valid
