import json

from fastapi.testclient import TestClient

from graphsample.application import create_application


def _client(container):
    return TestClient(create_application(container.config, container))


def test_multi_user_endpoint_end_to_end(graph_factory, build_container):
    graph = graph_factory(
        users=[{"id": "u1"}],
        memberships={"u1": ["g1", "g2"]},
        groups={"g1": "Engineering", "g2": "Sales"},
    )
    client = _client(build_container(graph))

    response = client.get("/GroupMembership/Users")

    assert response.status_code == 200
    assert response.json() == [
        {
            "Id": "u1",
            "GivenName": None,
            "Surname": None,
            "BusinessPhones": [],
            "MobilePhone": None,
            "Mail": None,
            "GroupMemberships": [
                {"GroupId": "g1", "DisplayName": "Engineering"},
                {"GroupId": "g2", "DisplayName": "Sales"},
            ],
        }
    ]
    assert graph.user_filters() == [None]


def test_missing_directory_values_are_reported_as_null(graph_factory, build_container):
    graph = graph_factory(users=[{"id": "u1"}], memberships={"u1": ["g1"]}, groups={"g1": None})
    client = _client(build_container(graph))
    expected = [
        {
            "Id": "u1",
            "GivenName": None,
            "Surname": None,
            "BusinessPhones": [],
            "MobilePhone": None,
            "Mail": None,
            "GroupMemberships": [{"GroupId": "g1", "DisplayName": None}],
        }
    ]

    listed = client.get("/GroupMembership/Users")
    filtered = client.get("/GroupMembership", params={"givenName": ""})

    assert listed.status_code == 200
    assert listed.json() == expected
    assert filtered.json() == expected


def test_single_user_group_without_display_name(graph_factory, build_container):
    graph = graph_factory(memberships={"john@contoso.com": ["g1"]}, groups={"g1": None})
    client = _client(build_container(graph))

    response = client.get("/GroupMembership")

    assert response.json() == {
        "UserId": "john@contoso.com",
        "GroupMemberships": [{"GroupId": "g1", "DisplayName": None}],
    }


def test_blank_filter_parameters_select_multi_user_variant(graph_factory, build_container):
    graph = graph_factory(
        users=[{"id": "u1"}],
        memberships={"u1": ["g1", "g2"]},
        groups={"g1": "Engineering", "g2": "Sales"},
    )
    client = _client(build_container(graph))

    response = client.get("/GroupMembership", params={"userPrincipalName": "", "givenName": "", "surname": ""})

    assert response.status_code == 200
    body = response.json()
    assert [item["Id"] for item in body] == ["u1"]
    assert body[0]["GroupMemberships"][1] == {"GroupId": "g2", "DisplayName": "Sales"}
    assert graph.user_filters() == [None]


def test_filter_parameters_are_forwarded(graph_factory, build_container):
    users = [
        {
            "id": "u7",
            "givenName": "Jane",
            "surname": "Doe",
            "mail": "jane@contoso.com",
            "businessPhones": ["+1 555 0100"],
            "mobilePhone": "+1 555 0101",
        }
    ]
    graph = graph_factory(users=users, memberships={"u7": []})
    client = _client(build_container(graph))

    response = client.get("/GroupMembership", params={"givenName": "Jane", "surname": "Do"})

    assert response.status_code == 200
    assert response.json() == [
        {
            "Id": "u7",
            "GivenName": "Jane",
            "Surname": "Doe",
            "BusinessPhones": ["+1 555 0100"],
            "MobilePhone": "+1 555 0101",
            "Mail": "jane@contoso.com",
            "GroupMemberships": [],
        }
    ]
    assert graph.user_filters() == ["startsWith(givenName, 'Jane') and startsWith(surname, 'Do')"]


def test_single_user_endpoint_without_memberships(graph_factory, build_container):
    graph = graph_factory(memberships={"john@contoso.com": []})
    client = _client(build_container(graph))

    response = client.get("/GroupMembership")

    assert response.status_code == 200
    assert response.json() == {"UserId": "john@contoso.com", "GroupMemberships": []}


def test_single_user_endpoint_uses_configured_user(graph_factory, build_container, config_factory):
    graph = graph_factory(memberships={"ops@contoso.com": ["g1"]}, groups={"g1": "Operations"})
    client = _client(build_container(graph, config_factory(default_user_id="ops@contoso.com")))

    response = client.get("/GroupMembership")

    assert response.json() == {
        "UserId": "ops@contoso.com",
        "GroupMemberships": [{"GroupId": "g1", "DisplayName": "Operations"}],
    }


def test_truncated_results_are_flagged(graph_factory, build_container, config_factory):
    graph = graph_factory(
        memberships={"john@contoso.com": ["g1", "g2"]}, groups={"g1": "A", "g2": "B"}
    )
    client = _client(build_container(graph, config_factory(max_memberships_per_user=1)))

    response = client.get("/GroupMembership")

    assert response.json() == {
        "UserId": "john@contoso.com",
        "GroupMemberships": [{"GroupId": "g1", "DisplayName": "A"}],
        "Truncated": True,
    }


def test_missing_group_maps_to_404(graph_factory, build_container):
    graph = graph_factory(memberships={"john@contoso.com": ["g1"]})
    client = _client(build_container(graph))

    response = client.get("/GroupMembership")

    assert response.status_code == 404
    assert response.json()["error"]["stage"] == "group_resolution"
    assert response.json()["error"]["code"] == "not_found"


def test_upstream_failure_maps_to_502(graph_factory, build_container):
    graph = graph_factory(users=[{"id": "u1"}], memberships={"u1": ["g1"]}, groups={"g1": "A"})
    graph.group_failures["g1"] = 500
    client = _client(build_container(graph))

    response = client.get("/GroupMembership/Users")

    assert response.status_code == 502
    assert response.json() == {
        "error": {
            "stage": "group_resolution",
            "code": "upstream_failure",
            "message": "Error: fake failure 500",
        }
    }


def test_throttling_maps_to_503(graph_factory, build_container):
    graph = graph_factory()
    graph.user_listing_status = 429
    client = _client(build_container(graph))

    response = client.get("/GroupMembership/Users")

    assert response.status_code == 503
    assert response.json()["error"]["stage"] == "user_listing"


def test_rejected_filter_maps_to_400(graph_factory, build_container):
    graph = graph_factory()
    graph.user_listing_status = 400
    client = _client(build_container(graph))

    response = client.get("/GroupMembership", params={"surname": "Doe"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_filter"


def test_token_failure_maps_to_401(graph_factory, build_container, token_provider, monkeypatch):
    from graphsample.core.errors import AuthError

    async def failing_acquire(scopes):
        raise AuthError("MSAL error: invalid_client - bad secret")

    monkeypatch.setattr(token_provider, "acquire_token", failing_acquire)
    client = _client(build_container(graph_factory()))

    response = client.get("/GroupMembership")

    assert response.status_code == 401
    assert response.json() == {
        "error": {
            "stage": "token_acquisition",
            "code": "authentication_failed",
            "message": "MSAL error: invalid_client - bad secret",
        }
    }


def test_health(graph_factory, build_container):
    client = _client(build_container(graph_factory()))

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_openapi_documents_both_membership_shapes(graph_factory, build_container):
    client = _client(build_container(graph_factory()))

    operation = client.get("/openapi.json").json()["paths"]["/GroupMembership"]["get"]
    schema = operation["responses"]["200"]["content"]["application/json"]["schema"]

    assert len(schema["anyOf"]) == 2
    assert "GroupMembershipInformation" in json.dumps(schema)
    assert "UserGroupMemberships" in json.dumps(schema)
    assert set(operation["responses"]) >= {"200", "400", "401", "404", "502", "503"}
