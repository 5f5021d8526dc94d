"""API tests for catalog, drafts, completed assessments and trends."""

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient

SUBJECT_ID = "subject-1"


def _step_one(value: int = 0) -> dict:
    return {
        "cognition": {"answers": {"cog_1": value}},
        "mood": {"answers": {"mood_1": value}},
    }


class TestCatalogEndpoint:
    def test_get_catalog(self, client: TestClient) -> None:
        response = client.get("/api/v1/catalog")

        assert response.status_code == 200
        data = response.json()
        assert data["version"] == "1.0.0"
        assert len(data["domains"]) == 12
        assert [g["id"] for g in data["groups"]][0] == "cognitive"
        assert data["domains"][2]["questions"][1]["id"] == "mob_2"


class TestPreviewEndpoint:
    """Tests for stateless scoring."""

    def test_preview_scores_partial_answers(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/assessments/preview",
            json={"domain_data": {"cognition": {"answers": {"cog_1": 2}}}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["overall_risk"] == "at_risk"
        assert data["total_score"] == 2
        assert data["flagged_domain_names"] == ["Memory & Thinking"]
        assert data["domain_results"][0]["is_complete"] is True

    def test_preview_flags_phq2_follow_up(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/assessments/preview",
            json={"domain_data": {"mood": {"answers": {"mood_1": 2}}}},
        )

        assert response.status_code == 200
        assert response.json()["requires_phq2"] is True

    def test_out_of_range_answer_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/assessments/preview",
            json={"domain_data": {"cognition": {"answers": {"cog_1": 3}}}},
        )

        assert response.status_code == 422


class TestPHQ2Endpoint:
    def test_positive_screen(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/screening/phq2",
            json={"interest_loss": 2, "depressed_mood": 2},
        )

        assert response.status_code == 200
        assert response.json()["total"] == 4
        assert response.json()["screen_positive"] is True

    def test_item_out_of_range(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/screening/phq2",
            json={"interest_loss": 4, "depressed_mood": 0},
        )

        assert response.status_code == 422


class TestDraftEndpoints:
    """Tests for advancing and reading drafts."""

    @pytest.mark.asyncio
    async def test_assessor_header_required(self, async_client: AsyncClient) -> None:
        response = await async_client.get(f"/api/v1/subjects/{SUBJECT_ID}/draft")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_no_open_draft(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.get(f"/api/v1/subjects/{SUBJECT_ID}/draft", headers=auth_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_incomplete_step_not_advanced(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/draft/advance",
            json={"current_step": 1, "domain_data": {"cognition": {"answers": {"cog_1": 1}}}},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"]["missing_question_ids"] == ["mood_1"]

    @pytest.mark.asyncio
    async def test_advance_saves_draft(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/draft/advance",
            json={"current_step": 1, "domain_data": _step_one(1), "notes": "Home visit"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["advanced"] is True
        assert data["saved"] is True
        assert data["step"] == 2
        assert data["is_review"] is False
        assert data["version"] == 1
        assert data["preview"]["total_score"] == 2

        draft = await async_client.get(f"/api/v1/subjects/{SUBJECT_ID}/draft", headers=auth_headers)
        assert draft.status_code == 200
        assert draft.json()["id"] == data["draft_id"]
        assert draft.json()["current_step"] == 2
        assert draft.json()["notes"] == "Home visit"
        assert draft.json()["assessor_id"] == "assessor-001"

    @pytest.mark.asyncio
    async def test_stale_version_conflict(self, async_client: AsyncClient, auth_headers: dict) -> None:
        url = f"/api/v1/subjects/{SUBJECT_ID}/draft/advance"
        first = await async_client.post(
            url, json={"current_step": 1, "domain_data": _step_one(0)}, headers=auth_headers
        )
        draft_id = first.json()["draft_id"]
        await async_client.post(
            url,
            json={
                "current_step": 1,
                "domain_data": _step_one(1),
                "draft_id": draft_id,
                "expected_version": 1,
            },
            headers=auth_headers,
        )

        response = await async_client.post(
            url,
            json={
                "current_step": 1,
                "domain_data": _step_one(2),
                "draft_id": draft_id,
                "expected_version": 1,
            },
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["draft_id"] == draft_id
        assert response.json()["detail"]["version"] == 2

    @pytest.mark.asyncio
    async def test_replayed_advance_is_safe(self, async_client: AsyncClient, auth_headers: dict) -> None:
        url = f"/api/v1/subjects/{SUBJECT_ID}/draft/advance"
        payload = {"current_step": 1, "domain_data": _step_one(0)}

        first = await async_client.post(url, json=payload, headers=auth_headers)
        replay = await async_client.post(url, json=payload, headers=auth_headers)

        assert replay.status_code == 200
        assert replay.json()["draft_id"] == first.json()["draft_id"]
        assert replay.json()["version"] == 1

    @pytest.mark.asyncio
    async def test_advance_from_review_rejected(
        self, async_client: AsyncClient, auth_headers: dict, all_healthy_data: dict
    ) -> None:
        response = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/draft/advance",
            json={"current_step": 7, "domain_data": all_healthy_data},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_save_keeps_partial_step(self, async_client: AsyncClient, auth_headers: dict) -> None:
        url = f"/api/v1/subjects/{SUBJECT_ID}/draft"
        payload = {"current_step": 1, "domain_data": {"cognition": {"answers": {"cog_1": 2}}}}

        response = await async_client.put(url, json=payload, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["current_step"] == 1
        assert data["version"] == 1
        assert data["overall_risk"] == "at_risk"
        assert data["domain_scores"]["cognition"]["answers"] == {"cog_1": 2}

        replay = await async_client.put(url, json=payload, headers=auth_headers)
        assert replay.status_code == 200
        assert replay.json()["id"] == data["id"]
        assert replay.json()["version"] == 1

        updated = await async_client.put(
            url,
            json={**payload, "notes": "Hearing aid", "draft_id": data["id"], "expected_version": 1},
            headers=auth_headers,
        )
        assert updated.json()["version"] == 2
        assert updated.json()["notes"] == "Hearing aid"

    @pytest.mark.asyncio
    async def test_save_stale_version_conflict(self, async_client: AsyncClient, auth_headers: dict) -> None:
        url = f"/api/v1/subjects/{SUBJECT_ID}/draft"
        first = await async_client.put(
            url, json={"current_step": 2, "domain_data": _step_one(0)}, headers=auth_headers
        )

        response = await async_client.put(
            url,
            json={"current_step": 2, "domain_data": _step_one(2)},
            headers={"X-Assessor-Id": "assessor-002"},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["draft_id"] == first.json()["id"]
        assert response.json()["detail"]["version"] == 1

    @pytest.mark.asyncio
    async def test_list_own_drafts(self, async_client: AsyncClient, auth_headers: dict) -> None:
        for subject_id, headers in (
            ("subject-1", auth_headers),
            ("subject-2", auth_headers),
            ("subject-3", {"X-Assessor-Id": "assessor-002"}),
        ):
            saved = await async_client.put(
                f"/api/v1/subjects/{subject_id}/draft",
                json={"current_step": 1, "domain_data": _step_one(0)},
                headers=headers,
            )
            assert saved.status_code == 200

        response = await async_client.get("/api/v1/drafts", headers=auth_headers)

        assert response.status_code == 200
        assert {d["subject_id"] for d in response.json()} == {"subject-1", "subject-2"}
        assert all(d["status"] == "draft" for d in response.json())

    @pytest.mark.asyncio
    async def test_list_drafts_requires_assessor(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/v1/drafts")

        assert response.status_code == 401



class TestCompleteEndpoint:
    """Tests for committing and reading completed assessments."""

    @pytest.mark.asyncio
    async def test_incomplete_assessment_rejected(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/assessments",
            json={"domain_data": _step_one(0)},
            headers=auth_headers,
        )

        assert response.status_code == 422
        missing = response.json()["detail"]["missing_question_ids"]
        assert "mob_1" in missing
        assert "cog_1" not in missing

    @pytest.mark.asyncio
    async def test_complete_promotes_draft(
        self, async_client: AsyncClient, auth_headers: dict, answer_all: Callable
    ) -> None:
        data = answer_all(1)
        advanced = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/draft/advance",
            json={"current_step": 1, "domain_data": data},
            headers=auth_headers,
        )
        draft = advanced.json()

        response = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/assessments",
            json={
                "domain_data": data,
                "notes": "Follow-up booked",
                "draft_id": draft["draft_id"],
                "expected_version": draft["version"],
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        completed = response.json()
        assert completed["id"] == draft["draft_id"]
        assert completed["status"] == "completed"
        assert completed["total_score"] == 15
        assert completed["max_total_score"] == 30
        assert completed["catalog_version"] == "1.0.0"
        assert len(completed["result"]["domain_results"]) == 12

        no_draft = await async_client.get(f"/api/v1/subjects/{SUBJECT_ID}/draft", headers=auth_headers)
        assert no_draft.status_code == 404

        fetched = await async_client.get(f"/api/v1/assessments/{completed['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.json()["overall_risk"] == completed["overall_risk"]
        assert fetched.json()["result"]["total_score"] == 15

        history = await async_client.get(
            f"/api/v1/assessments/{completed['id']}/history", headers=auth_headers
        )
        assert history.status_code == 200
        assert {e["action"] for e in history.json()} == {"create_draft", "complete_assessment"}

    @pytest.mark.asyncio
    async def test_draft_is_not_a_completed_assessment(
        self, async_client: AsyncClient, auth_headers: dict
    ) -> None:
        advanced = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/draft/advance",
            json={"current_step": 1, "domain_data": _step_one(0)},
            headers=auth_headers,
        )

        response = await async_client.get(
            f"/api/v1/assessments/{advanced.json()['draft_id']}", headers=auth_headers
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_complete_against_other_sessions_draft(
        self, async_client: AsyncClient, auth_headers: dict, all_healthy_data: dict
    ) -> None:
        await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/draft/advance",
            json={"current_step": 1, "domain_data": _step_one(2)},
            headers={"X-Assessor-Id": "assessor-002"},
        )

        response = await async_client.post(
            f"/api/v1/subjects/{SUBJECT_ID}/assessments",
            json={"domain_data": all_healthy_data},
            headers=auth_headers,
        )

        assert response.status_code == 409


class TestTrendsEndpoint:
    @pytest.mark.asyncio
    async def test_trends_over_completed_assessments(
        self, async_client: AsyncClient, auth_headers: dict, answer_all: Callable
    ) -> None:
        for value in (2, 0):
            response = await async_client.post(
                f"/api/v1/subjects/{SUBJECT_ID}/assessments",
                json={"domain_data": answer_all(value)},
                headers=auth_headers,
            )
            assert response.status_code == 201

        response = await async_client.get(f"/api/v1/subjects/{SUBJECT_ID}/trends", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["assessment_count"] == 2
        assert [p["total_score"] for p in data["series"]] == [30, 0]
        assert data["trend_counts"] == {"improved": 12, "declined": 0, "same": 0}
        assert len(data["radar"]) == 12

    @pytest.mark.asyncio
    async def test_no_history(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.get(f"/api/v1/subjects/{SUBJECT_ID}/trends", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["assessment_count"] == 0
        assert response.json()["series"] == []
