from collections.abc import Mapping

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    ReconciledSection,
    Record,
)
from gitlab_config.utils.exceptions import ProjectionError
from gitlab_config.utils.projection import (
    convert_nested_objects_to_ids,
    project,
)
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
    PlannedRecord,
)
from gitlab_config.utils.schema import get_approval_rules_descriptions

# field returned by GitLab -> configured field
NESTED_OBJECTS = {
    "users": "user_ids",
    "groups": "group_ids",
    "protected_branches": "protected_branch_ids",
}
REPORT_APPROVER = "report_approver"
CODE_COVERAGE = "code_coverage"


class ApprovalRulesSection(ReconciledSection):
    """
    Project-level merge request approval rules. Users, groups and protected
    branches are configured by ID, with their names as comments.
    """

    key = "approval_rules"
    title = "merge request approval rules"
    noun = "approval_rule"
    spec = IdentitySpec(kind="approval_rules", natural_key=("name",), field="id")

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_approval_rules_descriptions(ctx.docs)
        rules = []
        for i, rule in enumerate(self.list_existing(ctx)):
            if not isinstance(rule, dict):
                raise ProjectionError(
                    self.key, "approval_rules", "is not an object", index=i
                )
            for field, ids_field in NESTED_OBJECTS.items():
                rule[ids_field] = convert_nested_objects_to_ids(
                    self.key, field, rule.get(field)
                )
            # GitLab lists the branches even when the rule applies to all
            if rule.get("applies_to_all_protected_branches"):
                rule["protected_branch_ids"] = []
            rules.append(
                project(self.key, rule, descriptions, required={"id": int}, index=i)
            )
        rules.sort(key=lambda rule: rule["id"])
        return FetchedSection(rules, ctx.describe(descriptions))

    def list_existing(self, ctx: Context) -> list[Record]:
        return ctx.api.list_all(
            ctx.api.path("approval_rules"), "failed to get approval rules"
        )

    def prepare(
        self,
        ctx: Context,
        planned: PlannedRecord,
        index: int,
        existing: Mapping[Identity, Record],
    ) -> Record:
        # report approver rules can only be created for coverage reports
        if planned.record.get("rule_type") == REPORT_APPROVER:
            return {**planned.record, "report_type": CODE_COVERAGE}
        return planned.record

    def delete(self, ctx: Context, identity: Identity) -> None:
        ctx.api.delete(
            ctx.api.path("approval_rules", identity),
            "failed to delete approval rule",
            approval_rule=identity,
        )

    def create(self, ctx: Context, record: Record) -> None:
        ctx.api.post(
            ctx.api.path("approval_rules"),
            "failed to create approval rule",
            data=record,
            name=record["name"],
        )

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        ctx.api.put(
            ctx.api.path("approval_rules", identity),
            "failed to update approval rule",
            data=record,
            approval_rule=identity,
        )
