from collections.abc import Mapping

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    ReconciledSection,
    Record,
)
from gitlab_config.utils.projection import project
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
    PlannedRecord,
    diff_access_levels,
)
from gitlab_config.utils.schema import get_protected_branches_descriptions

# configured field -> field returned by GitLab
ACCESS_LEVELS = {
    "allowed_to_push": "push_access_levels",
    "allowed_to_merge": "merge_access_levels",
    "allowed_to_unprotect": "unprotect_access_levels",
}


class ProtectedBranchesSection(ReconciledSection):
    """
    Protected branches, identified by name. Existing protected branches are
    updated in place, together with their access levels.
    """

    key = "protected_branches"
    title = "protected branches"
    noun = "protected_branch"
    spec = IdentitySpec(kind="protected_branches", natural_key=("name",))

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_protected_branches_descriptions(ctx.docs)
        branches = [
            project(
                self.key,
                branch,
                descriptions,
                renames={v: k for k, v in ACCESS_LEVELS.items()},
                comment_field="access_level_description",
                required={"name": str},
                index=i,
            )
            for i, branch in enumerate(self.list_existing(ctx))
        ]
        branches.sort(key=lambda branch: branch["name"])
        return FetchedSection(branches, ctx.describe(descriptions))

    def list_existing(self, ctx: Context) -> list[Record]:
        return ctx.api.list_all(
            ctx.api.path("protected_branches"), "failed to get protected branches"
        )

    def prepare(
        self,
        ctx: Context,
        planned: PlannedRecord,
        index: int,
        existing: Mapping[Identity, Record],
    ) -> Record:
        payload = dict(planned.record)
        # a new branch has no access levels, so any ID is unknown
        current = existing[planned.identity] if planned.exists else {}
        for field, existing_field in ACCESS_LEVELS.items():
            levels = diff_access_levels(
                self.key,
                field,
                current.get(existing_field),
                planned.record.get(field),
                index=index,
            )
            if field in payload or (planned.exists and levels):
                payload[field] = levels
        return payload

    def delete(self, ctx: Context, identity: Identity) -> None:
        ctx.api.delete(
            ctx.api.path("protected_branches", identity),
            "failed to unprotect branch",
            branch=identity,
        )

    def create(self, ctx: Context, record: Record) -> None:
        ctx.api.post(
            ctx.api.path("protected_branches"),
            "failed to protect branch",
            data=record,
            branch=record["name"],
        )

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        ctx.api.patch(
            ctx.api.path("protected_branches", identity),
            "failed to update protected branch",
            data=record,
            branch=identity,
        )
