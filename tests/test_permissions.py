import pytest

from backoffice.security import Action, Actor, PermissionDeniedError, PermissionPolicy, Role


def test_admin_is_allowed_everything():
    policy = PermissionPolicy()
    assert policy.is_allowed(Role.ADMIN, "tickets", Action.DELETE)
    assert policy.is_allowed(Role.ADMIN, "settings", "update")


def test_technician_can_update_tickets_but_not_employees():
    policy = PermissionPolicy()
    assert policy.is_allowed(Role.TECHNICIAN, "tickets", Action.UPDATE)
    assert not policy.is_allowed(Role.TECHNICIAN, "tickets", Action.DELETE)
    assert not policy.is_allowed(Role.TECHNICIAN, "employees", Action.UPDATE)


def test_marketing_reads_tickets_only():
    policy = PermissionPolicy()
    assert policy.is_allowed(Role.MARKETING, "tickets", Action.READ)
    assert not policy.is_allowed(Role.MARKETING, "tickets", Action.UPDATE)


def test_missing_role_is_denied():
    assert not PermissionPolicy().is_allowed(None, "dashboard", Action.READ)


def test_authorize_raises_for_denied_action():
    policy = PermissionPolicy()
    actor = Actor(username="hr", role=Role.HR, employee_id="emp-hr")

    with pytest.raises(PermissionDeniedError) as exc:
        policy.authorize(actor, "tickets", Action.UPDATE)

    assert exc.value.resource == "tickets"
    assert exc.value.action == "update"
    assert str(exc.value) == "Insufficient permissions for update on tickets"


def test_authorize_requires_linked_employee():
    with pytest.raises(PermissionDeniedError):
        PermissionPolicy().authorize(Actor(username="admin", role=Role.ADMIN), "tickets", Action.READ)


def test_custom_grants_replace_defaults():
    policy = PermissionPolicy({Role.HR: {"tickets": [Action.UPDATE]}})
    policy.authorize(Actor(username="hr", role=Role.HR, employee_id="emp-hr"), "tickets", Action.UPDATE)
    assert not policy.is_allowed(Role.ADMIN, "tickets", Action.UPDATE)
