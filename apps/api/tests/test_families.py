import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import PersistenceFailure, ValidationFailure
from app.services.families import query_families, search_families


def _person(client, full_name, username):
    response = client.post("/v1/persons", json={"full_name": full_name, "username": username})
    assert response.status_code == 201
    return response.json()["data"]


def _create_family(client, creator_id, **overrides):
    payload = {
        "creator": creator_id,
        "family_name": "Okafor",
        "country": "Nigeria",
        "state": "Anambra",
        "tribe": "Igbo",
        "relationship_to_root": "son",
    }
    payload.update(overrides)
    return client.post("/v1/families", json=payload)


def test_family_lifecycle(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    root = _person(client, "Emeka Okafor", "emeka")

    created = _create_family(client, creator["id"], root=root["id"], family_type="paternal")
    assert created.status_code == 201
    body = created.json()
    assert body["message"] == "Okafor family created successfully"
    assert body["error"] is None
    family = body["data"]
    assert family["members_count"] == 2
    assert family["root_id"] == root["id"]
    assert family["creator_id"] == creator["id"]
    assert family["family_cover_image"].endswith("family-avatar.png")

    promoted = client.get(f"/v1/persons/{root['id']}").json()["data"]
    assert promoted["role"] == "root"
    assert promoted["family_rooted_to_id"] == family["id"]

    fetched = client.get(f"/v1/families/{family['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["family_username"] == family["family_username"]

    updated = client.patch(f"/v1/families/{family['id']}", json={"tribe": "Igbo-Nri", "state": "Enugu"})
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["tribe"] == "Igbo-Nri"
    assert data["country"] == "Nigeria"
    assert data["family_join_link"].endswith(f"/enugu/{family['family_username']}")

    joiner = _person(client, "Amaka Okafor", "amaka")
    joined = client.post(
        f"/v1/families/{family['id']}/join",
        json={"user": joiner["id"], "relationship_to_root": "daughter"},
    )
    assert joined.status_code == 200
    assert joined.json()["message"] == "you've successfully joined Okafor family"
    assert joined.json()["data"]["family_id"] == family["id"]

    again = client.post(
        f"/v1/families/{family['id']}/join",
        json={"user": joiner["id"], "relationship_to_root": "daughter"},
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "family_member_exists"
    assert again.json()["message"] == "you're already a member of this family"

    members = client.get(f"/v1/families/{family['id']}/members").json()["data"]
    assert [item["user_id"] for item in members] == [root["id"], creator["id"], joiner["id"]]


def test_root_conflict_envelope(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    root = _person(client, "Emeka Okafor", "emeka")
    first = _create_family(client, creator["id"], root=root["id"]).json()["data"]

    other = _person(client, "Ngozi Eze", "ngozi")
    response = _create_family(client, other["id"], family_name="Eze", root=root["id"])
    assert response.status_code == 409
    body = response.json()
    assert body["error"]["code"] == "family_root_conflict"
    assert body["data"] == {"family_username": first["family_username"]}


def test_family_not_found_envelopes(client):
    missing = client.get("/v1/families/999")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "family_not_found"

    joiner = _person(client, "Amaka Okafor", "amaka")
    join = client.post("/v1/families/999/join", json={"user": joiner["id"], "relationship_to_root": "son"})
    assert join.status_code == 404
    assert join.json()["error"]["code"] == "family_not_found"

    update = client.patch("/v1/families/999", json={"tribe": "Igbo"})
    assert update.status_code == 404


def test_invalid_relationship_rejected_at_boundary(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    response = _create_family(client, creator["id"], new_root_full_name="Nnamdi", relationship_to_root="in-law")
    assert response.status_code == 422


def test_missing_parent_is_validation_failure(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    response = _create_family(client, creator["id"], new_root_full_name="Nnamdi", relationship_to_root="grandson")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "parent_required"


def test_search_families(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    _create_family(client, creator["id"], new_root_full_name="Nnamdi Okafor")
    other = _person(client, "Ngozi Eze", "ngozi")
    _create_family(client, other["id"], family_name="Eze", state="Cross River", new_root_full_name="Obi Eze")

    by_name = client.get("/v1/families/search", params={"text": "okaf"})
    assert by_name.status_code == 200
    assert [item["family_name"] for item in by_name.json()["data"]] == ["Okafor"]

    by_state = client.get("/v1/families/search", params={"text": "RIVER"})
    assert [item["family_name"] for item in by_state.json()["data"]] == ["Eze"]

    by_country = client.get("/v1/families/search", params={"text": "nigeria"})
    assert len(by_country.json()["data"]) == 2

    none = client.get("/v1/families/search", params={"text": "Adeyemi"})
    assert none.status_code == 200
    assert none.json()["data"] == []
    assert none.json()["error"] is None
    assert none.json()["message"] == "no family found with Adeyemi"

    wildcard = client.get("/v1/families/search", params={"text": "%"})
    assert wildcard.json()["data"] == []


def test_query_families_caps_member_preview(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    root = _person(client, "Emeka Okafor", "emeka")
    family = _create_family(client, creator["id"], root=root["id"]).json()["data"]
    for index in range(6):
        joiner = _person(client, f"Child {index}", f"child{index}")
        response = client.post(
            f"/v1/families/{family['id']}/join",
            json={"user": joiner["id"], "relationship_to_root": "son" if index % 2 else "daughter"},
        )
        assert response.status_code == 200

    other = _person(client, "Ngozi Eze", "ngozi")
    _create_family(client, other["id"], family_name="Eze", tribe="Efik", new_root_full_name="Obi Eze")

    response = client.get(
        "/v1/families",
        params={"family_name": "okafor", "country": "NIGERIA", "state": "anam", "tribe": "igbo"},
    )
    assert response.status_code == 200
    results = response.json()["data"]
    assert len(results) == 1
    result = results[0]
    assert result["id"] == family["id"]
    assert len(result["members"]) == 6
    assert result["root"]["full_name"] == "Emeka Okafor"
    assert result["root"]["role"] == "root"
    assert result["members"][0]["username"] == "emeka"
    assert result["members"][0]["relationship_to_root"] == "root"

    assert client.get("/v1/families", params={"tribe": "Yoruba"}).json()["data"] == []
    assert len(client.get("/v1/families").json()["data"]) == 2


def test_attach_branches_keeps_tree_acyclic(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    main = _create_family(client, creator["id"], new_root_full_name="Nnamdi Okafor").json()["data"]
    second = _person(client, "Ike Okafor", "ike")
    branch = _create_family(client, second["id"], family_name="OkaforIke", new_root_full_name="Obi Okafor").json()[
        "data"
    ]
    third = _person(client, "Uche Okafor", "uche")
    leaf = _create_family(client, third["id"], family_name="OkaforUche", new_root_full_name="Eze Okafor").json()[
        "data"
    ]

    attached = client.post(f"/v1/families/{main['id']}/branches", json={"branch_id": branch["id"]})
    assert attached.status_code == 200
    assert [item["id"] for item in attached.json()["data"]["branches"]] == [branch["id"]]

    nested = client.post(f"/v1/families/{branch['id']}/branches", json={"branch_id": leaf["id"]})
    assert nested.status_code == 200

    cycle = client.post(f"/v1/families/{leaf['id']}/branches", json={"branch_id": main["id"]})
    assert cycle.status_code == 409
    assert cycle.json()["error"]["code"] == "family_branch_conflict"

    self_branch = client.post(f"/v1/families/{main['id']}/branches", json={"branch_id": main["id"]})
    assert self_branch.status_code == 409

    reattach = client.post(f"/v1/families/{main['id']}/branches", json={"branch_id": leaf["id"]})
    assert reattach.status_code == 409

    fetched = client.get(f"/v1/families/{leaf['id']}").json()["data"]
    assert fetched["parent_family_id"] == branch["id"]


def test_validation_endpoints(client):
    creator = _person(client, "Chidi Okafor", "chidi")
    _create_family(client, creator["id"], new_root_full_name="Nnamdi Okafor", family_type="MATERNAL")

    taken = client.post("/v1/families/validate/family-type", json={"user_id": creator["id"], "family_type": "maternal"})
    assert taken.status_code == 409
    assert taken.json()["data"] is False
    assert "Okafor" in taken.json()["message"]

    free = client.post("/v1/families/validate/family-type", json={"user_id": creator["id"], "family_type": "PATERNAL"})
    assert free.status_code == 200
    assert free.json()["data"] is True

    direct = client.post("/v1/families/validate/relationship", json={"relationship_to_root": "son"})
    assert direct.json()["data"] is True
    distant = client.post("/v1/families/validate/relationship", json={"relationship_to_root": "great-grandchild"})
    assert distant.json()["data"] is False


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_blank_search_text_is_rejected(client, db_session):
    creator = _person(client, "Chidi Okafor", "chidi")
    _create_family(client, creator["id"], new_root_full_name="Nnamdi Okafor")

    response = client.get("/v1/families/search", params={"text": "   "})
    assert response.status_code == 422

    with pytest.raises(ValidationFailure) as exc_info:
        search_families(db_session, "   ")
    assert exc_info.value.code == "search_text_required"


def test_query_store_failure_uses_search_failure_code(db_session, monkeypatch):
    def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT families", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    with pytest.raises(PersistenceFailure) as exc_info:
        query_families(db_session, tribe="Igbo")
    assert exc_info.value.code == "family_search_failed"
    assert exc_info.value.status_code == 500
