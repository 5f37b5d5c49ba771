import time

from fastapi import status

from aqva.services.roles import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_DETECTION_FAILED,
    ROLE_RIDER,
    check_admin_with_timeout,
    resolve_role,
)


def test_slow_admin_check_counts_as_not_admin():
    def slow() -> bool:
        time.sleep(0.5)
        return True

    assert check_admin_with_timeout(slow, timeout=0.05) == (False, None)


def test_failing_admin_check_reports_diagnostic():
    def broken() -> bool:
        raise RuntimeError("permission denied for table admins")

    assert check_admin_with_timeout(broken, timeout=1) == (False, ROLE_DETECTION_FAILED)


def test_resolve_role_admin(db, test_user):
    assert resolve_role(db, test_user, admin_check=lambda: True).role == ROLE_ADMIN


def test_resolve_role_rider_after_admin_timeout(db, rider, rider_user):
    def slow() -> bool:
        time.sleep(0.5)
        return True

    resolution = resolve_role(db, rider_user, admin_check=slow, timeout=0.05)

    assert resolution.role == ROLE_RIDER
    assert resolution.diagnostic is None


def test_resolve_role_client_with_diagnostic(db, test_user):
    def broken() -> bool:
        raise RuntimeError("boom")

    resolution = resolve_role(db, test_user, admin_check=broken)

    assert resolution.role == ROLE_CLIENT
    assert resolution.diagnostic == ROLE_DETECTION_FAILED


def test_role_endpoint_for_each_role(client, test_user, admin_user, rider, rider_user, make_headers):
    cases = [(test_user, ROLE_CLIENT), (admin_user, ROLE_ADMIN), (rider_user, ROLE_RIDER)]
    for user, expected in cases:
        response = client.get("/api/auth/role", headers=make_headers(user))
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"role": expected, "diagnostic": None}
