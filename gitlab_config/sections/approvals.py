import logging

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    Record,
    Section,
)
from gitlab_config.utils.projection import (
    cast_floats_to_ints,
    describe_keys,
    retain_fields,
)
from gitlab_config.utils.schema import get_approvals_descriptions


class ApprovalsSection(Section):
    """Merge request approval settings of the project."""

    key = "approvals"
    title = "merge request approvals"

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_approvals_descriptions(ctx.docs)
        approvals = ctx.api.get(
            ctx.api.path("approvals"), "failed to get merge request approvals"
        )
        cast_floats_to_ints(approvals)
        retain_fields(approvals, descriptions)
        describe_keys(approvals, descriptions)
        return FetchedSection(approvals)

    def apply(self, ctx: Context, value: Record) -> None:
        logging.info(["update_approvals", ctx.settings.project])
        if not ctx.dry_run:
            ctx.api.post(
                ctx.api.path("approvals"),
                "failed to update merge request approvals",
                data=value,
            )
