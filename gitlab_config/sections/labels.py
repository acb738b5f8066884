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
)
from gitlab_config.utils.schema import get_labels_descriptions

# only the project's own labels, not those inherited from groups
LIST_QUERY = {"include_ancestor_groups": "false"}


class LabelsSection(ReconciledSection):
    """
    Project labels. Labels without an ID are matched to existing labels by
    name, so keep IDs in the configuration to be able to rename labels.
    """

    key = "labels"
    title = "labels"
    noun = "label"
    spec = IdentitySpec(kind="labels", natural_key=("name",), field="id")

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_labels_descriptions(ctx.docs)
        labels = [
            project(self.key, label, descriptions, required={"id": int}, index=i)
            for i, label in enumerate(self.list_existing(ctx))
        ]
        labels.sort(key=lambda label: label["id"])
        return FetchedSection(labels, ctx.describe(descriptions))

    def list_existing(self, ctx: Context) -> list[Record]:
        return ctx.api.list_all(
            ctx.api.path("labels"), "failed to get labels", query_data=LIST_QUERY
        )

    def delete(self, ctx: Context, identity: Identity) -> None:
        ctx.api.delete(
            ctx.api.path("labels", identity), "failed to delete label", label=identity
        )

    def create(self, ctx: Context, record: Record) -> None:
        ctx.api.post(
            ctx.api.path("labels"),
            "failed to create label",
            data=record,
            name=record["name"],
        )

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        ctx.api.put(
            ctx.api.path("labels", identity),
            "failed to update label",
            data=record,
            label=identity,
        )
