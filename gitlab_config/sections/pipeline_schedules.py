import logging
from collections.abc import Mapping
from typing import Any

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    ReconciledSection,
    Record,
)
from gitlab_config.utils.exceptions import ReconciliationInputError
from gitlab_config.utils.projection import (
    COMMENT_PREFIX,
    project,
    require_field,
)
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
    PlannedRecord,
    ReconciliationPlan,
    reconcile,
)
from gitlab_config.utils.schema import (
    get_pipeline_schedule_variables_descriptions,
    get_pipeline_schedules_descriptions,
)

VARIABLES = "variables"
VARIABLES_SPEC = IdentitySpec(kind="pipeline_schedule_variables", natural_key=("key",))


def split_variables(record: Record) -> tuple[Record, Any]:
    """The schedule without its variables, and the variables (None if absent)."""
    schedule = {k: v for k, v in record.items() if k != VARIABLES}
    return schedule, record.get(VARIABLES)


class PipelineSchedulesSection(ReconciledSection):
    """
    Pipeline schedules, matched by description when they have no ID. Their
    variables are reconciled by key through the schedule variables API.
    """

    key = "pipeline_schedules"
    title = "pipeline schedules"
    noun = "pipeline_schedule"
    spec = IdentitySpec(
        kind="pipeline_schedules", natural_key=("description",), field="id"
    )

    def fetch(self, ctx: Context) -> FetchedSection:
        descriptions = get_pipeline_schedules_descriptions(ctx.docs)
        variable_descriptions = get_pipeline_schedule_variables_descriptions(ctx.docs)
        schedules = []
        for i, item in enumerate(self.list_existing(ctx)):
            schedule_id = require_field(self.key, item, "id", int, index=i)
            # only a single schedule is returned with its variables
            schedule = self.get_schedule(ctx, schedule_id)
            project(self.key, schedule, descriptions, required={"id": int}, index=i)
            variables = []
            for j, variable in enumerate(schedule.get(VARIABLES) or []):
                project(
                    VARIABLES_SPEC.kind,
                    variable,
                    variable_descriptions,
                    required={"key": str},
                    index=j,
                )
                if ctx.enc_comment:
                    variable[f"{COMMENT_PREFIX}value{ctx.enc_suffix}"] = ctx.enc_comment
                if ctx.enc_suffix and "value" in variable:
                    variable[f"value{ctx.enc_suffix}"] = variable.pop("value")
                variables.append(variable)
            schedule[VARIABLES] = sorted(variables, key=lambda v: v["key"])
            schedules.append(schedule)
        schedules.sort(key=lambda schedule: schedule["id"])
        sensitive = any(schedule[VARIABLES] for schedule in schedules)
        return FetchedSection(schedules, ctx.describe(descriptions), sensitive)

    def list_existing(self, ctx: Context) -> list[Record]:
        return ctx.api.list_all(
            ctx.api.path("pipeline_schedules"), "failed to get pipeline schedules"
        )

    def get_schedule(self, ctx: Context, schedule_id: int) -> Record:
        return ctx.api.get(
            ctx.api.path("pipeline_schedules", schedule_id),
            "failed to get pipeline schedule",
            pipeline_schedule=schedule_id,
        )

    def plan_variables(
        self,
        ctx: Context,
        schedule_id: int | None,
        variables: Any,
        index: int | None = None,
    ) -> ReconciliationPlan:
        if not isinstance(variables, list):
            raise ReconciliationInputError(
                self.spec.kind,
                f'field "{VARIABLES}" is not a list',
                index=index,
                field=VARIABLES,
            )
        existing = []
        if schedule_id is not None:
            existing = self.get_schedule(ctx, schedule_id).get(VARIABLES) or []
        return reconcile(variables, existing, VARIABLES_SPEC)

    def prepare(
        self,
        ctx: Context,
        planned: PlannedRecord,
        index: int,
        existing: Mapping[Identity, Record],
    ) -> Record:
        _, variables = split_variables(planned.record)
        if variables is not None:
            # validates variables before anything is changed
            self.plan_variables(ctx, planned.identity, variables, index)
        return planned.record

    def delete(self, ctx: Context, identity: Identity) -> None:
        ctx.api.delete(
            ctx.api.path("pipeline_schedules", identity),
            "failed to delete pipeline schedule",
            pipeline_schedule=identity,
        )

    def create(self, ctx: Context, record: Record) -> Identity:
        schedule, _ = split_variables(record)
        created = ctx.api.post(
            ctx.api.path("pipeline_schedules"),
            "failed to create pipeline schedule",
            data=schedule,
            description=schedule.get("description"),
        )
        return created["id"]

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        schedule, _ = split_variables(record)
        ctx.api.put(
            ctx.api.path("pipeline_schedules", identity),
            "failed to update pipeline schedule",
            data=schedule,
            pipeline_schedule=identity,
        )

    def apply_nested(
        self,
        ctx: Context,
        planned: PlannedRecord,
        identity: Identity | None,
        record: Record,
    ) -> None:
        _, variables = split_variables(record)
        if variables is None:
            return
        # a new schedule has no variables yet
        plan = self.plan_variables(
            ctx, planned.identity if planned.exists else None, variables
        )
        schedule = identity if identity is not None else record.get("description")
        self.apply_variables(ctx, identity, schedule, plan)

    def apply_variables(
        self,
        ctx: Context,
        schedule_id: Identity | None,
        schedule: Any,
        plan: ReconciliationPlan,
    ) -> None:
        """
        Apply the plan for the variables of a schedule. schedule names the
        schedule in logs, as a schedule not created in dry-run has no ID.
        """
        for key in plan.to_delete:
            logging.info(["delete_pipeline_schedule_variable", schedule, key])
            if not ctx.dry_run:
                ctx.api.delete(
                    ctx.api.path("pipeline_schedules", schedule_id, VARIABLES, key),
                    "failed to delete pipeline schedule variable",
                    pipeline_schedule=schedule_id,
                    key=key,
                )
        for planned in plan.records:
            key = planned.record["key"]
            if planned.exists:
                logging.info(["update_pipeline_schedule_variable", schedule, key])
                if not ctx.dry_run:
                    ctx.api.put(
                        ctx.api.path("pipeline_schedules", schedule_id, VARIABLES, key),
                        "failed to update pipeline schedule variable",
                        data=planned.record,
                        pipeline_schedule=schedule_id,
                        key=key,
                    )
            else:
                logging.info(["create_pipeline_schedule_variable", schedule, key])
                if not ctx.dry_run:
                    ctx.api.post(
                        ctx.api.path("pipeline_schedules", schedule_id, VARIABLES),
                        "failed to create pipeline schedule variable",
                        data=planned.record,
                        pipeline_schedule=schedule_id,
                        key=key,
                    )
