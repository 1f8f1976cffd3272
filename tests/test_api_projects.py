import pytest

from src.core.config import settings
from src.domain.enums import FlatType
from src.main import app
from src.services.sql_repository import SqlProjectRepository


pytestmark = pytest.mark.integration


def test_health_and_root(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["database"] == "connected"

    root = client.get("/")
    assert root.json()["health"] == "/health"


def test_applicant_sees_open_eligible_projects(client, seed_user, seed_project, make_applicant, auth_headers):
    seed_project(name="Open Two", units={FlatType.TWO_ROOM: 2})
    seed_project(name="Three Only", units={FlatType.THREE_ROOM: 2})
    seed_project(name="Hidden", units={FlatType.TWO_ROOM: 2}, visible=False)
    single = seed_user(make_applicant(age=40))

    response = client.get("/api/v1/projects", headers=auth_headers(single))

    assert response.status_code == 200
    assert [p["name"] for p in response.json()["projects"]] == ["Open Two"]


def test_manager_sees_managed_projects(client, seed_user, seed_project, make_manager, auth_headers):
    manager = seed_user(make_manager())
    seed_project(name="Mine")
    seed_project(name="Theirs", manager="T1111111Z")

    response = client.get("/api/v1/projects", headers=auth_headers(manager))

    assert response.json()["total"] == 1
    assert response.json()["projects"][0]["name"] == "Mine"


def test_get_project(client, seed_user, seed_project, make_manager, auth_headers):
    manager = seed_user(make_manager())
    seed_project(units={FlatType.TWO_ROOM: 1, FlatType.THREE_ROOM: 2})

    found = client.get("/api/v1/projects/Acacia Breeze", headers=auth_headers(manager))
    missing = client.get("/api/v1/projects/Nowhere", headers=auth_headers(manager))

    assert found.status_code == 200
    assert [cell["flat_type"] for cell in found.json()["flat_types"]] == ["2-Room", "3-Room"]
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


def test_project_applications_filters(
    client, seed_user, seed_project, make_applicant, make_manager, auth_headers
):
    manager = seed_user(make_manager())
    seed_project()
    alice = seed_user(make_applicant(nric="S2500000A", age=25, married=True))
    bob = seed_user(make_applicant(nric="S2600000B", age=26, married=True))

    def submit(user, flat_type):
        response = client.post(
            "/api/v1/applications",
            json={"project_name": "Acacia Breeze", "flat_type": flat_type},
            headers=auth_headers(user),
        )
        return response.json()["application"]["application_id"]

    first = submit(alice, "2-Room")
    second = submit(bob, "3-Room")
    client.post(f"/api/v1/applications/{first}/approve", headers=auth_headers(manager))
    client.post(f"/api/v1/applications/{second}/withdrawal", headers=auth_headers(bob))

    url = "/api/v1/projects/Acacia Breeze/applications"
    everything = client.get(url, headers=auth_headers(manager)).json()
    successful = client.get(url, params={"status_filter": "successful"}, headers=auth_headers(manager)).json()
    withdrawals = client.get(url, params={"withdrawal_requested": "true"}, headers=auth_headers(manager)).json()

    assert everything["total"] == 2
    assert [a["application_id"] for a in successful["applications"]] == [first]
    assert [a["application_id"] for a in withdrawals["applications"]] == [second]


def test_project_applications_forbidden_for_applicants(
    client, seed_user, seed_project, make_applicant, auth_headers
):
    seed_project()
    alice = seed_user(make_applicant(nric="S2500000A", age=25, married=True))

    response = client.get("/api/v1/projects/Acacia Breeze/applications", headers=auth_headers(alice))

    assert response.status_code == 403


def test_hidden_project_not_found_for_applicants(
    client, seed_user, seed_project, make_applicant, make_manager, auth_headers
):
    seed_project(name="Hidden", visible=False)
    manager = seed_user(make_manager())
    alice = seed_user(make_applicant(nric="S2500000A", age=25, married=True))

    response = client.get("/api/v1/projects/Hidden", headers=auth_headers(alice))

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
    assert client.get("/api/v1/projects/Hidden", headers=auth_headers(manager)).status_code == 200


def test_hidden_project_stays_visible_to_its_applicants(
    client, test_db, seed_user, seed_project, make_applicant, auth_headers
):
    project = seed_project()
    alice = seed_user(make_applicant(nric="S2500000A", age=25, married=True))
    submitted = client.post(
        "/api/v1/applications",
        json={"project_name": "Acacia Breeze", "flat_type": "2-Room"},
        headers=auth_headers(alice),
    )
    assert submitted.status_code == 201

    project.visible = False
    SqlProjectRepository(test_db).save_project(project)

    response = client.get("/api/v1/projects/Acacia Breeze", headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.json()["visible"] is False


def test_routes_follow_api_version():
    prefix = f"/api/{settings.API_VERSION}/"
    api_paths = [
        route.path for route in app.routes
        if route.path.startswith("/api/")
    ]

    assert api_paths
    assert all(path.startswith(prefix) for path in api_paths)
    assert f"{prefix}applications" in api_paths
    assert f"{prefix}projects/{{project_name}}/enquiries" in api_paths
    assert f"{prefix}enquiries/{{enquiry_id}}/reply" in api_paths


def test_enquiry_flow(
    client, seed_user, seed_project, make_applicant, make_officer, make_manager, auth_headers
):
    seed_project()
    manager = auth_headers(seed_user(make_manager()))
    officer = auth_headers(seed_user(make_officer(assigned_project="Acacia Breeze", registration_approved=True)))
    alice = auth_headers(seed_user(make_applicant(nric="S2500000A", age=25, married=True)))
    bob = auth_headers(seed_user(make_applicant(nric="S2600000B", age=26, married=True)))

    asked = client.post(
        "/api/v1/projects/Acacia Breeze/enquiries",
        json={"question": "Is there a carpark?"},
        headers=alice,
    )
    assert asked.status_code == 201
    enquiry_id = asked.json()["enquiry"]["enquiry_id"]
    assert asked.json()["enquiry"]["is_answered"] is False

    edited = client.patch(
        f"/api/v1/enquiries/{enquiry_id}",
        json={"question": "Is there a sheltered carpark?"},
        headers=alice,
    )
    assert edited.status_code == 200
    assert edited.json()["enquiry"]["question"] == "Is there a sheltered carpark?"
    assert client.patch(
        f"/api/v1/enquiries/{enquiry_id}", json={"question": "Hijacked"}, headers=bob
    ).status_code == 403

    listed = client.get("/api/v1/projects/Acacia Breeze/enquiries", headers=officer)
    assert listed.status_code == 200
    assert listed.json()["total"] == 1
    assert client.get("/api/v1/projects/Acacia Breeze/enquiries", headers=alice).status_code == 403

    replied = client.post(f"/api/v1/enquiries/{enquiry_id}/reply", json={"reply": "Yes."}, headers=manager)
    assert replied.status_code == 200
    assert replied.json()["enquiry"]["replied_by"] == "T8765432F"
    assert client.post(
        f"/api/v1/enquiries/{enquiry_id}/reply", json={"reply": "Me too"}, headers=bob
    ).status_code == 403

    locked = client.patch(f"/api/v1/enquiries/{enquiry_id}", json={"question": "Later"}, headers=alice)
    assert locked.status_code == 409

    mine = client.get("/api/v1/enquiries/me", headers=alice).json()
    assert mine["total"] == 1
    assert mine["enquiries"][0]["reply"] == "Yes."
    assert client.get("/api/v1/enquiries/me", headers=bob).json()["total"] == 0

    assert client.delete(f"/api/v1/enquiries/{enquiry_id}", headers=bob).status_code == 403
    assert client.delete(f"/api/v1/enquiries/{enquiry_id}", headers=alice).status_code == 204
    assert client.get("/api/v1/enquiries/me", headers=alice).json()["total"] == 0


def test_enquiry_on_hidden_project_not_found(client, seed_user, seed_project, make_applicant, auth_headers):
    seed_project(name="Hidden", visible=False)
    alice = seed_user(make_applicant(nric="S2500000A", age=25, married=True))

    response = client.post(
        "/api/v1/projects/Hidden/enquiries",
        json={"question": "When does it open?"},
        headers=auth_headers(alice),
    )

    assert response.status_code == 404
