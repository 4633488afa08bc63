"""API endpoint integration tests.

Tests the FastAPI endpoints for plans, activities and appraisals.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from performance_engine import __version__

from ..conftest import (
    EMPLOYEE_ID,
    EMPLOYEE_USER_ID,
    HR_USER_ID,
    OUTSIDER_ID,
    PLAN_PERIOD,
    PLAN_YEAR,
    REVIEWER_ID,
    SUPERVISOR_ID,
    weighted,
)

pytestmark = pytest.mark.asyncio

EMPLOYEE_HEADERS = {
    "X-User-ID": str(EMPLOYEE_USER_ID),
    "X-Employee-ID": str(EMPLOYEE_ID),
    "X-User-Name": "Emma Employee",
}
SUPERVISOR_HEADERS = {"X-User-ID": str(SUPERVISOR_ID), "X-User-Name": "Sam Supervisor"}
REVIEWER_HEADERS = {"X-User-ID": str(REVIEWER_ID), "X-User-Name": "Rita Reviewer"}
HR_HEADERS = {"X-User-ID": str(HR_USER_ID), "X-User-Roles": "Staff, HR_Manager"}
OUTSIDER_HEADERS = {"X-User-ID": str(OUTSIDER_ID), "X-User-Name": "Oscar Outsider"}


async def create_plan(client: AsyncClient, *weights: int) -> dict:
    response = await client.post(
        "/api/v1/plans",
        headers=EMPLOYEE_HEADERS,
        json={
            "employee_id": str(EMPLOYEE_ID),
            "supervisor_id": str(SUPERVISOR_ID),
            "reviewer_id": str(REVIEWER_ID),
            "plan_year": PLAN_YEAR,
            "plan_period": PLAN_PERIOD,
            "responsibilities": weighted(*weights),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


async def act(client: AsyncClient, plan_id: str, headers: dict, action: str, role: str, comment=None):
    return await client.post(
        f"/api/v1/plans/{plan_id}/workflow",
        headers=headers,
        json={"action": action, "acting_role": role, "comment": comment},
    )


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["version"] == __version__
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"
        assert response.json()["missing_tables"] == []

    async def test_not_ready_without_schema(self, bare_client: AsyncClient):
        response = await bare_client.get("/ready")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["missing_tables"] == ["performance_plan", "performance_appraisal"]

        response = await bare_client.get("/health")
        assert response.json()["database"] == "healthy"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestIdentityHeaders:
    """Test actor extraction from headers."""

    async def test_missing_user_header(self, client: AsyncClient):
        response = await client.get(f"/api/v1/plans/{uuid4()}")
        assert response.status_code == 400
        assert response.json()["detail"] == "X-User-ID header is required"

    async def test_malformed_user_header(self, client: AsyncClient):
        response = await client.get(f"/api/v1/plans/{uuid4()}", headers={"X-User-ID": "not-a-uuid"})
        assert response.status_code == 400


class TestPlanEndpoints:
    """Test plan CRUD endpoints."""

    async def test_create_plan(self, client: AsyncClient):
        """POST /api/v1/plans should create a draft plan."""
        data = await create_plan(client, 40, 30, 20, 10)

        assert data["workflow_status"] == "draft"
        assert data["status"] == "draft"
        assert data["weight_total"] == 100
        assert data["progress"] == 0
        assert data["version"] == 1
        assert data["comments"] == {"supervisor": [], "reviewer": []}
        assert [r["weight"] for r in data["responsibilities"]] == [40, 30, 20, 10]

    async def test_get_plan(self, client: AsyncClient):
        created = await create_plan(client, 100)

        response = await client.get(f"/api/v1/plans/{created['id']}", headers=SUPERVISOR_HEADERS)

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    async def test_outsider_cannot_read_plan(self, client: AsyncClient):
        plan_id = (await create_plan(client, 100))["id"]

        for path in (f"/api/v1/plans/{plan_id}", f"/api/v1/plans/{plan_id}/workflow"):
            response = await client.get(path, headers=OUTSIDER_HEADERS)
            assert response.status_code == 403
            assert response.json()["code"] == "AUTHORIZATION_ERROR"

    async def test_outsider_cannot_create_plan_for_employee(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/plans",
            headers=OUTSIDER_HEADERS,
            json={
                "employee_id": str(EMPLOYEE_ID),
                "supervisor_id": str(OUTSIDER_ID),
                "reviewer_id": str(OUTSIDER_ID),
                "plan_year": PLAN_YEAR,
                "plan_period": PLAN_PERIOD,
            },
        )
        assert response.status_code == 403

        data = await create_plan(client, 100)
        assert data["supervisor_id"] == str(SUPERVISOR_ID)
        assert data["reviewer_id"] == str(REVIEWER_ID)

    async def test_get_plan_not_found(self, client: AsyncClient):
        plan_id = uuid4()
        response = await client.get(f"/api/v1/plans/{plan_id}", headers=EMPLOYEE_HEADERS)

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "NOT_FOUND"
        assert body["details"]["record_id"] == str(plan_id)

    async def test_invalid_entries_return_field_errors(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/plans",
            headers=EMPLOYEE_HEADERS,
            json={
                "employee_id": str(EMPLOYEE_ID),
                "supervisor_id": str(SUPERVISOR_ID),
                "plan_year": PLAN_YEAR,
                "plan_period": PLAN_PERIOD,
                "responsibilities": [{"description": " ", "weight": 120}],
            },
        )
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert len(body["details"]["errors"]) == 2

    async def test_update_responsibilities(self, client: AsyncClient):
        created = await create_plan(client, 40, 30, 20)
        first = created["responsibilities"][0]

        response = await client.put(
            f"/api/v1/plans/{created['id']}/responsibilities",
            headers=EMPLOYEE_HEADERS,
            json={
                "responsibilities": [
                    {"id": first["id"], "description": first["description"], "weight": 70},
                    {
                        "description": "Improve onboarding",
                        "weight": 30,
                        "success_indicators": [{"indicator": "New hires productive in 30 days"}],
                    },
                ]
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["weight_total"] == 100
        assert data["responsibilities"][0]["id"] == first["id"]
        assert data["responsibilities"][1]["success_indicators"][0]["indicator"] == (
            "New hires productive in 30 days"
        )

    async def test_delete_plan(self, client: AsyncClient):
        created = await create_plan(client, 100)

        response = await client.delete(f"/api/v1/plans/{created['id']}", headers=EMPLOYEE_HEADERS)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/plans/{created['id']}", headers=EMPLOYEE_HEADERS)
        assert response.status_code == 404


class TestWorkflowEndpoints:
    """Test the approval pipeline over HTTP."""

    async def test_full_approval(self, client: AsyncClient):
        plan_id = (await create_plan(client, 40, 30, 20, 10))["id"]

        assert (await act(client, plan_id, EMPLOYEE_HEADERS, "submit", "employee")).status_code == 200
        response = await act(client, plan_id, SUPERVISOR_HEADERS, "approve", "supervisor", "Agreed")
        assert response.json()["workflow_status"] == "supervisor_approved"

        response = await act(client, plan_id, REVIEWER_HEADERS, "final_approve", "reviewer")
        data = response.json()
        assert response.status_code == 200
        assert data["workflow_status"] == "approved"
        assert data["status"] == "completed"
        assert data["reviewer_approved_at"] is not None
        assert data["comments"]["supervisor"][0]["text"] == "Agreed"

        history = await client.get(f"/api/v1/plans/{plan_id}/workflow", headers=EMPLOYEE_HEADERS)
        assert history.json()["reviewer_approval"] == "approved"
        assert history.json()["available_actions"] == []

    async def test_unbalanced_submit(self, client: AsyncClient):
        plan_id = (await create_plan(client, 40, 30, 20))["id"]

        response = await act(client, plan_id, EMPLOYEE_HEADERS, "submit", "employee")

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"] == {"total": 90, "required": 100}

    async def test_wrong_role_is_forbidden(self, client: AsyncClient):
        plan_id = (await create_plan(client, 100))["id"]
        await act(client, plan_id, EMPLOYEE_HEADERS, "submit", "employee")
        await act(client, plan_id, SUPERVISOR_HEADERS, "approve", "supervisor")

        response = await act(client, plan_id, SUPERVISOR_HEADERS, "final_approve", "reviewer")

        assert response.status_code == 403
        assert response.json()["code"] == "AUTHORIZATION_ERROR"

    async def test_out_of_sequence_and_locked(self, client: AsyncClient):
        plan_id = (await create_plan(client, 100))["id"]

        response = await act(client, plan_id, SUPERVISOR_HEADERS, "approve", "supervisor")
        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

        await act(client, plan_id, EMPLOYEE_HEADERS, "submit", "employee")
        await act(client, plan_id, HR_HEADERS, "approve", "supervisor")
        await act(client, plan_id, HR_HEADERS, "final_approve", "reviewer")

        response = await act(client, plan_id, REVIEWER_HEADERS, "comment", "reviewer", "late note")
        assert response.status_code == 423
        assert response.json()["code"] == "RECORD_LOCKED"

    async def test_pending_with_status_alias(self, client: AsyncClient):
        plan_id = (await create_plan(client, 100))["id"]
        await act(client, plan_id, EMPLOYEE_HEADERS, "submit", "employee")

        response = await client.get(
            "/api/v1/plans/pending",
            headers=SUPERVISOR_HEADERS,
            params={"status": "supervisor_review"},
        )
        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [plan_id]

        response = await client.get("/api/v1/plans/pending", headers=REVIEWER_HEADERS)
        assert response.json() == []


class TestActivityEndpoints:
    """Test activity recording."""

    async def test_record_activity_updates_progress(self, client: AsyncClient):
        created = await create_plan(client, 40, 60)
        responsibility_id = created["responsibilities"][0]["id"]

        response = await client.post(
            f"/api/v1/responsibilities/{responsibility_id}/activities",
            headers=EMPLOYEE_HEADERS,
            json={"title": "Finished audit", "status": "completed"},
        )
        assert response.status_code == 201
        assert response.json()["completed_at"] is not None

        plan = (await client.get(f"/api/v1/plans/{created['id']}", headers=EMPLOYEE_HEADERS)).json()
        assert plan["responsibilities"][0]["progress"] == 100
        assert plan["progress"] == 40

    async def test_unknown_responsibility(self, client: AsyncClient):
        response = await client.post(
            f"/api/v1/responsibilities/{uuid4()}/activities",
            headers=EMPLOYEE_HEADERS,
            json={"title": "x"},
        )
        assert response.status_code == 404


class TestAppraisalEndpoints:
    """Test appraisal endpoints."""

    async def test_appraisal_lifecycle(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/appraisals",
            headers=EMPLOYEE_HEADERS,
            json={
                "employee_id": str(EMPLOYEE_ID),
                "supervisor_id": str(SUPERVISOR_ID),
                "reviewer_id": str(REVIEWER_ID),
            },
        )
        assert response.status_code == 201
        appraisal_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/appraisals/{appraisal_id}/workflow",
            headers=EMPLOYEE_HEADERS,
            json={"action": "submit", "acting_role": "employee"},
        )
        assert response.json()["status"] == "submitted"

        response = await client.put(
            f"/api/v1/appraisals/{appraisal_id}/rating",
            headers=SUPERVISOR_HEADERS,
            json={"overall_rating": "4.25"},
        )
        assert response.status_code == 200
        assert response.json()["overall_rating"] == "4.25"

        pending = await client.get("/api/v1/appraisals/pending", headers=SUPERVISOR_HEADERS)
        assert [a["id"] for a in pending.json()] == [appraisal_id]

        history = await client.get(f"/api/v1/appraisals/{appraisal_id}/workflow", headers=REVIEWER_HEADERS)
        assert history.json()["record_type"] == "appraisal"
        assert history.json()["supervisor_approval"] == "pending"

    async def test_rating_out_of_range(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/appraisals",
            headers=EMPLOYEE_HEADERS,
            json={"employee_id": str(EMPLOYEE_ID), "supervisor_id": str(SUPERVISOR_ID)},
        )
        appraisal_id = response.json()["id"]

        response = await client.put(
            f"/api/v1/appraisals/{appraisal_id}/rating",
            headers=SUPERVISOR_HEADERS,
            json={"overall_rating": "7"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_appraisal_access_is_limited_to_participants(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/appraisals",
            headers=SUPERVISOR_HEADERS,
            json={"employee_id": str(EMPLOYEE_ID), "supervisor_id": str(SUPERVISOR_ID)},
        )
        assert response.status_code == 403

        response = await client.post(
            "/api/v1/appraisals",
            headers=EMPLOYEE_HEADERS,
            json={"employee_id": str(EMPLOYEE_ID), "supervisor_id": str(SUPERVISOR_ID)},
        )
        appraisal_id = response.json()["id"]

        for path in (f"/api/v1/appraisals/{appraisal_id}", f"/api/v1/appraisals/{appraisal_id}/workflow"):
            assert (await client.get(path, headers=OUTSIDER_HEADERS)).status_code == 403
            assert (await client.get(path, headers=SUPERVISOR_HEADERS)).status_code == 200
