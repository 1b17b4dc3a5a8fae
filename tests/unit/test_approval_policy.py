"""Unit tests for ApprovalPolicy and Actor."""

import pytest

from ledger_kernel.domain.approval import Actor, ApprovalPolicy


@pytest.fixture
def coded_policy() -> ApprovalPolicy:
    return ApprovalPolicy(approval_code="7781")


class TestElevatedRoles:
    @pytest.mark.parametrize("role", ["manager", "admin", "Manager", "ADMIN"])
    def test_elevated_roles_may_approve(self, coded_policy, role):
        assert coded_policy.can_approve(Actor(id="u", role=role))

    @pytest.mark.parametrize("role", ["sales", "", None])
    def test_other_roles_need_a_code(self, coded_policy, role):
        assert not coded_policy.can_approve(Actor(id="u", role=role))

    def test_custom_roles(self):
        policy = ApprovalPolicy(elevated_roles=frozenset({"owner"}))
        assert policy.can_approve(Actor(id="u", role="owner"))
        assert not policy.can_approve(Actor(id="u", role="manager"))


class TestApprovalCode:
    def test_matching_code(self, coded_policy):
        assert coded_policy.can_approve(Actor(id="u", role="sales", approval_code="7781"))

    def test_wrong_code(self, coded_policy):
        assert not coded_policy.code_is_valid("7782")

    def test_no_configured_code_accepts_nothing(self):
        policy = ApprovalPolicy(approval_code=None)
        assert not policy.code_is_valid("")
        assert not policy.code_is_valid(None)
        assert not policy.code_is_valid("1234")

    def test_empty_configured_code_accepts_nothing(self):
        assert not ApprovalPolicy(approval_code="").code_is_valid("")


class TestActorWithCode:
    def test_with_code_returns_copy(self):
        actor = Actor(id="u", email="u@example.com", role="sales")
        coded = actor.with_code("7781")

        assert coded.approval_code == "7781"
        assert coded.email == actor.email
        assert actor.approval_code is None

    def test_none_keeps_actor(self):
        actor = Actor(id="u", approval_code="1")
        assert actor.with_code(None) is actor
