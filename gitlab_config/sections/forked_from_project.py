import logging

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    Record,
    Section,
)
from gitlab_config.utils.exceptions import ProjectionError

NO_FORK = 0


def fork_id(record: Record) -> int:
    forked_from = record.get("forked_from_project")
    if forked_from is None:
        return NO_FORK
    if not isinstance(forked_from, dict) or "id" not in forked_from:
        raise ProjectionError("project", "forked_from_project", "is not a project")
    return int(forked_from["id"])


class ForkedFromProjectSection(Section):
    """The project this project is a fork of, 0 when it is not a fork."""

    key = "forked_from_project"
    title = "project fork relation"

    def fetch(self, ctx: Context) -> FetchedSection:
        forked_from = ctx.project.get("forked_from_project") or {}
        path = forked_from.get("path_with_namespace")
        if path is not None and not isinstance(path, str):
            raise ProjectionError(
                "project", "forked_from_project.path_with_namespace", "is not a string"
            )
        return FetchedSection(fork_id(ctx.project), path)

    def apply(self, ctx: Context, value: int) -> None:
        current = fork_id(ctx.api.get_project())
        if value == current:
            return

        if current != NO_FORK:
            logging.info(["delete_fork_relation", current])
            if not ctx.dry_run:
                ctx.api.delete(
                    ctx.api.path("fork"),
                    "failed to delete fork relation",
                    forked_from_project=current,
                )
        if value != NO_FORK:
            logging.info(["create_fork_relation", value])
            if not ctx.dry_run:
                ctx.api.post(
                    ctx.api.path("fork", value),
                    "failed to create fork relation",
                    forked_from_project=value,
                )
