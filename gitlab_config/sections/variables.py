from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    ReconciledSection,
    Record,
)
from gitlab_config.utils.projection import (
    COMMENT_PREFIX,
    project,
)
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
)
from gitlab_config.utils.schema import get_variables_descriptions


class VariablesSection(ReconciledSection):
    """
    Project level CI/CD variables, identified by key and environment scope.

    Values are secrets: they are stored under a field with the encryption
    suffix, so that sops encrypts them.
    """

    key = "variables"
    title = "variables"
    noun = "variable"
    spec = IdentitySpec(kind="variables", natural_key=("key", "environment_scope"))

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_variables_descriptions(ctx.docs)
        variables = []
        for i, variable in enumerate(self.list_existing(ctx)):
            project(self.key, variable, descriptions, required={"key": str}, index=i)
            if ctx.enc_comment:
                variable[f"{COMMENT_PREFIX}value{ctx.enc_suffix}"] = ctx.enc_comment
            if ctx.enc_suffix and "value" in variable:
                variable[f"value{ctx.enc_suffix}"] = variable.pop("value")
            variables.append(variable)
        variables.sort(key=lambda v: (v["key"], v.get("environment_scope") or ""))
        return FetchedSection(
            variables, ctx.describe(descriptions), sensitive=bool(variables)
        )

    def list_existing(self, ctx: Context) -> list[Record]:
        # GitLab returns 403 when CI/CD is disabled for the project
        return ctx.api.list_all(
            ctx.api.path("variables"),
            "failed to get variables",
            allow_forbidden_first_page=True,
        )

    @staticmethod
    def scope(identity: Identity) -> dict:
        _, environment_scope = identity
        return {"filter": {"environment_scope": environment_scope}}

    def delete(self, ctx: Context, identity: Identity) -> None:
        key, environment_scope = identity
        ctx.api.delete(
            ctx.api.path("variables", key),
            "failed to delete variable",
            query_data=self.scope(identity),
            key=key,
            environment_scope=environment_scope,
        )

    def create(self, ctx: Context, record: Record) -> None:
        ctx.api.post(
            ctx.api.path("variables"),
            "failed to create variable",
            data=record,
            key=record["key"],
            environment_scope=record["environment_scope"],
        )

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        key, environment_scope = identity
        ctx.api.put(
            ctx.api.path("variables", key),
            "failed to update variable",
            data=record,
            query_data=self.scope(identity),
            key=key,
            environment_scope=environment_scope,
        )
