import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property
from typing import Any

from gitlab_config.utils.config import GitLabSettings
from gitlab_config.utils.docs import Documentation
from gitlab_config.utils.gitlab_api import GitLabApi
from gitlab_config.utils.reconciler import (
    Identity,
    IdentitySpec,
    PlannedRecord,
    ReconciliationPlan,
    reconcile,
)
from gitlab_config.utils.schema import (
    Descriptions,
    format_descriptions,
)
from gitlab_config.utils.sops import (
    DEFAULT_ENC_COMMENT,
    DEFAULT_ENC_SUFFIX,
)

Record = dict[str, Any]


@dataclass
class Context:
    """Everything a section needs to read or update its part of a project."""

    api: GitLabApi
    docs: Documentation
    settings: GitLabSettings
    dry_run: bool = False
    avatar_path: str = ".gitlab-avatar.img"
    enc_comment: str = DEFAULT_ENC_COMMENT
    enc_suffix: str = DEFAULT_ENC_SUFFIX

    @cached_property
    def project(self) -> Record:
        """The project as returned by GitLab, fetched once per run."""
        return self.api.get_project()

    def describe(self, descriptions: Descriptions) -> str:
        return format_descriptions(descriptions, self.settings.comment_width)


@dataclass
class FetchedSection:
    value: Any
    comment: str | None = None
    # the value contains secrets which should be encrypted
    sensitive: bool = False


class Section:
    key: str
    title: str

    def fetch(self, ctx: Context) -> FetchedSection:
        raise NotImplementedError

    def apply(self, ctx: Context, value: Any) -> None:
        raise NotImplementedError


class ReconciledSection(Section):
    """
    A section holding a list of records which GitLab exposes as a
    collection. Desired records are reconciled with existing ones by
    identity, then unwanted records are deleted, and the rest updated or
    created in the order of the configuration.
    """

    spec: IdentitySpec
    # name used in log messages, e.g. "label" for "delete_label"
    noun: str

    def list_existing(self, ctx: Context) -> list[Record]:
        raise NotImplementedError

    def delete(self, ctx: Context, identity: Identity) -> None:
        raise NotImplementedError

    def create(self, ctx: Context, record: Record) -> Identity | None:
        """Create record, returning its identity when nested records need it."""
        raise NotImplementedError

    def update(self, ctx: Context, identity: Identity, record: Record) -> None:
        raise NotImplementedError

    def apply_nested(
        self,
        ctx: Context,
        planned: PlannedRecord,
        identity: Identity | None,
        record: Record,
    ) -> None:
        """
        Reconcile records nested in record once record itself is created or
        updated. identity is None for a record which was not created because
        of dry-run.
        """

    def prepare(
        self,
        ctx: Context,
        planned: PlannedRecord,
        index: int,
        existing: Mapping[Identity, Record],
    ) -> Record:
        """
        Payload for creating or updating the planned record. Called for all
        records before anything is changed, so it is the place to validate.
        """
        return planned.record

    def plan(
        self, ctx: Context, value: list[Record]
    ) -> tuple[ReconciliationPlan, list[Record]]:
        existing_records = self.list_existing(ctx)
        plan = reconcile(value, existing_records, self.spec)
        existing = {
            self.spec.identity_of(item, i): item
            for i, item in enumerate(existing_records)
        }
        payloads = [
            self.prepare(ctx, planned, i, existing)
            for i, planned in enumerate(plan.records)
        ]
        return plan, payloads

    def apply(self, ctx: Context, value: list[Record]) -> None:
        plan, payloads = self.plan(ctx, value)

        for identity in plan.to_delete:
            logging.info([f"delete_{self.noun}", identity])
            if not ctx.dry_run:
                self.delete(ctx, identity)

        for planned, payload in zip(plan.records, payloads):
            if planned.exists:
                logging.info([f"update_{self.noun}", planned.identity])
                if not ctx.dry_run:
                    self.update(ctx, planned.identity, payload)
                self.apply_nested(ctx, planned, planned.identity, payload)
            else:
                logging.info(
                    [f"create_{self.noun}", self.spec.natural_key_of(payload)]
                )
                identity = None
                if not ctx.dry_run:
                    identity = self.create(ctx, payload)
                self.apply_nested(ctx, planned, identity, payload)
