import pytest

from gitlab_config.sections.approval_rules import ApprovalRulesSection
from gitlab_config.sections.approvals import ApprovalsSection
from gitlab_config.sections.base import Context
from gitlab_config.sections.push_rules import PushRulesSection
from gitlab_config.test.conftest import PROJECT_PATH
from gitlab_config.test.fixtures import mutations

RULES = f"{PROJECT_PATH}/approval_rules"
PUSH_RULE = f"{PROJECT_PATH}/push_rule"


@pytest.fixture
def rules() -> list[dict]:
    return [
        {
            "id": 2,
            "name": "Coverage-Check",
            "rule_type": "report_approver",
            "report_type": "code_coverage",
            "approvals_required": 1,
            "users": [{"id": 5, "name": "Jane Doe", "username": "jane"}],
            "groups": [],
            "protected_branches": [{"id": 9, "name": "main"}],
            "applies_to_all_protected_branches": True,
            "contains_hidden_groups": False,
        },
        {
            "id": 1,
            "name": "Security",
            "rule_type": "regular",
            "approvals_required": 2,
            "users": [],
            "groups": [{"id": 7, "name": "security"}],
            "protected_branches": [{"id": 9, "name": "main"}],
            "applies_to_all_protected_branches": False,
        },
    ]


def test_fetch_approvals(ctx: Context) -> None:
    ctx.api.get.return_value = {
        "approvers": [],
        "approvals_before_merge": 0,
        "reset_approvals_on_push": True,
        "merge_requests_author_approval": False,
    }
    fetched = ApprovalsSection().fetch(ctx)
    assert fetched.value == {
        "reset_approvals_on_push": True,
        "comment:reset_approvals_on_push": (
            "Reset approvals on a new push. Type: boolean"
        ),
        "merge_requests_author_approval": False,
        "comment:merge_requests_author_approval": (
            "Allow or prevent authors from self approving merge requests; true "
            "means authors can self approve. Type: boolean"
        ),
    }


def test_apply_approvals(ctx: Context) -> None:
    ApprovalsSection().apply(ctx, {"reset_approvals_on_push": False})
    ctx.api.post.assert_called_once_with(
        f"{PROJECT_PATH}/approvals",
        "failed to update merge request approvals",
        data={"reset_approvals_on_push": False},
    )


def test_fetch_approval_rules(ctx: Context, rules: list[dict]) -> None:
    ctx.api.list_all.return_value = rules
    fetched = ApprovalRulesSection().fetch(ctx)
    assert fetched.value == [
        {
            "id": 1,
            "name": "Security",
            "rule_type": "regular",
            "approvals_required": 2,
            "user_ids": [],
            "group_ids": ["comment:security", 7],
            "protected_branch_ids": ["comment:main", 9],
            "applies_to_all_protected_branches": False,
        },
        {
            "id": 2,
            "name": "Coverage-Check",
            "rule_type": "report_approver",
            "approvals_required": 1,
            "user_ids": ["comment:Jane Doe", 5],
            "group_ids": [],
            "protected_branch_ids": [],
            "applies_to_all_protected_branches": True,
        },
    ]


def test_apply_approval_rules(ctx: Context, rules: list[dict]) -> None:
    ctx.api.list_all.return_value = rules
    ApprovalRulesSection().apply(
        ctx,
        [
            {"name": "Coverage-Check", "rule_type": "report_approver"},
            {"name": "License", "approvals_required": 1},
        ],
    )
    assert mutations(ctx.api) == [
        ("delete", f"{RULES}/1"),
        ("put", f"{RULES}/2"),
        ("post", RULES),
    ]
    ctx.api.put.assert_called_once_with(
        f"{RULES}/2",
        "failed to update approval rule",
        data={
            "id": 2,
            "name": "Coverage-Check",
            "rule_type": "report_approver",
            "report_type": "code_coverage",
        },
        approval_rule=2,
    )


def test_fetch_push_rules_none(ctx: Context) -> None:
    ctx.api.get.return_value = None
    assert PushRulesSection().fetch(ctx).value == {}


@pytest.mark.parametrize(
    "existing, value, expected",
    [
        ({}, {}, []),
        ({"id": 1, "member_check": True}, {}, [("delete", PUSH_RULE)]),
        ({}, {"member_check": True}, [("post", PUSH_RULE)]),
        ({"id": 1}, {"member_check": True}, [("put", PUSH_RULE)]),
    ],
)
def test_apply_push_rules(
    ctx: Context, existing: dict, value: dict, expected: list
) -> None:
    ctx.api.get.return_value = existing or None
    PushRulesSection().apply(ctx, value)
    assert mutations(ctx.api) == expected
