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
from gitlab_config.utils.schema import get_push_rules_descriptions


class PushRulesSection(Section):
    """
    The push rule of the project. An empty mapping removes the push rule,
    any other value creates or edits it.
    """

    key = "push_rules"
    title = "push rules"

    def get_push_rule(self, ctx: Context) -> Record:
        # null when the project has no push rule
        return (
            ctx.api.get(ctx.api.path("push_rule"), "failed to get push rules") or {}
        )

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_push_rules_descriptions(ctx.docs)
        push_rule = self.get_push_rule(ctx)
        cast_floats_to_ints(push_rule)
        retain_fields(push_rule, descriptions)
        describe_keys(push_rule, descriptions)
        return FetchedSection(push_rule)

    def apply(self, ctx: Context, value: Record) -> None:
        exists = bool(self.get_push_rule(ctx))
        if not value:
            if exists:
                logging.info(["delete_push_rule", ctx.settings.project])
                if not ctx.dry_run:
                    ctx.api.delete(
                        ctx.api.path("push_rule"), "failed to delete push rules"
                    )
        elif exists:
            logging.info(["update_push_rule", ctx.settings.project])
            if not ctx.dry_run:
                ctx.api.put(
                    ctx.api.path("push_rule"), "failed to edit push rules", data=value
                )
        else:
            logging.info(["create_push_rule", ctx.settings.project])
            if not ctx.dry_run:
                ctx.api.post(
                    ctx.api.path("push_rule"), "failed to add push rules", data=value
                )
