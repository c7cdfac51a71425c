from assetvault.middleware.rate_limit import group_limit, route_group


def test_route_groups() -> None:
    assert route_group("/api/v1/upload/product-image", "/api/v1") == "upload"
    assert route_group("/api/v1/upload/document", "/api/v1") == "upload"
    assert route_group("/api/v1/account/delete", "/api/v1") == "account-delete"
    assert route_group("/api/v1/storage/usage", "/api/v1") == "default"


def test_group_limits() -> None:
    assert group_limit("upload") == 20
    assert group_limit("account-delete") == 5
    assert group_limit("default") == 120
