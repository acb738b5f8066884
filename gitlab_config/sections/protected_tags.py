from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    ReconciledSection,
    Record,
)
from gitlab_config.utils.projection import (
    project,
    remove_field,
)
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
)
from gitlab_config.utils.schema import get_protected_tags_descriptions


class ProtectedTagsSection(ReconciledSection):
    """
    Protected tags, identified by name. GitLab cannot update a protected
    tag, so an existing one is unprotected and then protected again.
    """

    key = "protected_tags"
    title = "protected tags"
    noun = "protected_tag"
    spec = IdentitySpec(kind="protected_tags", natural_key=("name",))

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_protected_tags_descriptions(ctx.docs)
        tags = []
        for i, tag in enumerate(self.list_existing(ctx)):
            tag["allowed_to_create"] = tag.get("create_access_levels")
            # access levels are recreated with the tag, their IDs are useless
            remove_field(tag["allowed_to_create"], "id")
            tags.append(
                project(
                    self.key,
                    tag,
                    descriptions,
                    comment_field="access_level_description",
                    required={"name": str},
                    index=i,
                )
            )
        tags.sort(key=lambda tag: tag["name"])
        return FetchedSection(tags, ctx.describe(descriptions))

    def list_existing(self, ctx: Context) -> list[Record]:
        return ctx.api.list_all(
            ctx.api.path("protected_tags"), "failed to get protected tags"
        )

    def delete(self, ctx: Context, identity: Identity) -> None:
        ctx.api.delete(
            ctx.api.path("protected_tags", identity),
            "failed to unprotect tag",
            tag=identity,
        )

    def create(self, ctx: Context, record: Record) -> None:
        ctx.api.post(
            ctx.api.path("protected_tags"),
            "failed to protect tag",
            data=record,
            tag=record["name"],
        )

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        ctx.api.delete(
            ctx.api.path("protected_tags", identity),
            "failed to unprotect tag before reprotecting",
            tag=identity,
        )
        self.create(ctx, record)
