import copy

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    ReconciledSection,
    Record,
)
from gitlab_config.utils.exceptions import ProjectionError
from gitlab_config.utils.projection import (
    COMMENT_PREFIX,
    project,
)
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
)
from gitlab_config.utils.schema import get_shared_with_groups_descriptions


def existing_shares(record: Record) -> list[Record]:
    shares = record.get("shared_with_groups") or []
    if not isinstance(shares, list):
        raise ProjectionError("project", "shared_with_groups", "is not a list")
    return shares


class SharedWithGroupsSection(ReconciledSection):
    """
    Groups the project is shared with. A share cannot be changed, so an
    existing share is removed and then added again with the new settings.
    """

    key = "shared_with_groups"
    title = "sharing with groups"
    noun = "share"
    spec = IdentitySpec(
        kind="shared_with_groups", natural_key=("group_id",), natural_key_type=int
    )

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_shared_with_groups_descriptions(ctx.docs)
        shares = []
        for i, share in enumerate(copy.deepcopy(existing_shares(ctx.project))):
            if not isinstance(share, dict):
                raise ProjectionError(
                    self.key, "shared_with_groups", "item is not an object", index=i
                )
            full_path = share.get("group_full_path")
            # the share API uses a different name than the get project API
            project(
                self.key,
                share,
                descriptions,
                renames={"group_access_level": "group_access"},
                required={"group_id": int},
                index=i,
            )
            if full_path is not None:
                share[COMMENT_PREFIX] = full_path
            shares.append(share)
        shares.sort(key=lambda s: s["group_id"])
        return FetchedSection(shares, ctx.describe(descriptions))

    def list_existing(self, ctx: Context) -> list[Record]:
        return existing_shares(ctx.api.get_project())

    def delete(self, ctx: Context, identity: Identity) -> None:
        ctx.api.delete(
            ctx.api.path("share", identity),
            "failed to unshare group",
            group_id=identity,
        )

    def create(self, ctx: Context, record: Record) -> None:
        ctx.api.post(
            ctx.api.path("share"),
            "failed to share group",
            data=record,
            group_id=record["group_id"],
        )

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        ctx.api.delete(
            ctx.api.path("share", identity),
            "failed to unshare group before resharing",
            group_id=identity,
        )
        self.create(ctx, record)
