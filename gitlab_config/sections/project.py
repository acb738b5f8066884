import copy
import logging
from typing import Any

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    Record,
    Section,
)
from gitlab_config.utils.exceptions import ProjectionError
from gitlab_config.utils.projection import (
    cast_floats_to_ints,
    describe_keys,
    retain_fields,
)
from gitlab_config.utils.schema import get_project_descriptions

POLICY = "container_expiration_policy"


class ProjectSection(Section):
    key = "project"
    title = "project"

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_project_descriptions(ctx.docs)
        project = copy.deepcopy(ctx.project)
        cast_floats_to_ints(project)
        retain_fields(project, descriptions)

        # only enables or disables mirroring, which is configured elsewhere
        project.pop("mirror", None)

        policy = project.get(POLICY)
        if policy is not None:
            if not isinstance(policy, dict):
                raise ProjectionError("project", POLICY, "is not an object")
            # name_regex is deprecated in favor of name_regex_delete
            name_regex = policy.pop("name_regex", None)
            if name_regex is not None and policy.get("name_regex_delete") is None:
                policy["name_regex_delete"] = name_regex
            # not editable
            policy.pop("next_run_at", None)

        describe_keys(project, descriptions)
        return FetchedSection(project)

    def apply(self, ctx: Context, value: Record) -> None:
        logging.info(["update_project", ctx.settings.project])
        if not ctx.dry_run:
            ctx.api.put(
                ctx.api.project_path,
                "failed to update project",
                data=edit_payload(value),
            )


def edit_payload(value: Record) -> dict[str, Any]:
    """The edit API names some fields differently than the get API."""
    payload = copy.deepcopy(value)
    if POLICY in payload:
        policy = payload.pop(POLICY)
        if isinstance(policy, dict):
            # for now both the new and the deprecated field are provided
            policy["name_regex"] = policy.get("name_regex_delete")
        payload[f"{POLICY}_attributes"] = policy
    if "public_jobs" in payload:
        payload["public_builds"] = payload.pop("public_jobs")
    return payload
