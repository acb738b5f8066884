"""
Reconciliation of a desired list of records with the records which exist in
GitLab.

Everything here is pure: functions take already fetched data and return plans
which callers then turn into API calls. Input records are never modified.
"""

import copy
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import (
    dataclass,
    field,
)
from typing import Any

from gitlab_config.utils.exceptions import (
    ReconciliationInputError,
    type_name,
)

Identity = Hashable

DESTROY = "_destroy"
ACCESS_LEVEL_DISCRIMINANTS = ("access_level", "user_id", "group_id")


@dataclass(frozen=True)
class IdentitySpec:
    """
    How records of one kind are identified.

    Attributes:
        kind: Human readable kind of records, used in errors and logs.
        natural_key: Fields which form the natural key of a record. A single
            field gives a scalar key, more fields give a tuple.
        field: Field holding the identity GitLab assigned to the record. When
            None, the natural key is the identity (e.g., protected branches are
            addressed by their name).
        identity_type: Type of values in field.
        natural_key_type: Type of values of natural key fields.
    """

    kind: str
    natural_key: tuple[str, ...]
    field: str | None = None
    identity_type: type = int
    natural_key_type: type = str

    def identity_of(
        self, record: Mapping[str, Any], index: int | None = None
    ) -> Identity:
        if self.field is None:
            return self.natural_key_of(record, index)
        return _typed(self.kind, record, self.field, self.identity_type, index)

    def natural_key_of(
        self, record: Mapping[str, Any], index: int | None = None
    ) -> Identity:
        values = tuple(
            _typed(self.kind, record, f, self.natural_key_type, index)
            for f in self.natural_key
        )
        return values[0] if len(values) == 1 else values


def _typed(
    kind: str, record: Mapping[str, Any], name: str, type_: type, index: int | None
) -> Any:
    if name not in record:
        raise ReconciliationInputError(
            kind, f'field "{name}" is missing', index=index, field=name
        )
    value = record[name]
    if isinstance(value, bool) or not isinstance(value, type_):
        raise ReconciliationInputError(
            kind,
            f'field "{name}" is not {type_.__name__} but {type_name(value)}',
            index=index,
            field=name,
        )
    return value


@dataclass
class PlannedRecord:
    """
    A desired record after identity resolution. identity is None when the
    record has to be created.
    """

    record: dict[str, Any]
    identity: Identity | None = None

    @property
    def exists(self) -> bool:
        return self.identity is not None


@dataclass
class ReconciliationPlan:
    """
    Changes needed to make existing records match desired ones.

    Deletions are to be applied first, in the given order, then records are
    created or updated in the desired order.
    """

    existing: set[Identity] = field(default_factory=set)
    wanted: set[Identity] = field(default_factory=set)
    to_delete: list[Identity] = field(default_factory=list)
    records: list[PlannedRecord] = field(default_factory=list)

    @property
    def to_create(self) -> list[dict[str, Any]]:
        return [r.record for r in self.records if not r.exists]

    @property
    def to_update(self) -> list[tuple[Identity, dict[str, Any]]]:
        return [(r.identity, r.record) for r in self.records if r.exists]


def reconcile(
    desired: Iterable[Any], existing: Iterable[Mapping[str, Any]], spec: IdentitySpec
) -> ReconciliationPlan:
    """
    Match desired records to existing ones and compute what has to be
    deleted, created and updated.

    A desired record with an identity of an existing record is matched to it.
    A record with an unknown (stale) identity has the identity removed and,
    like records without identity, is matched by its natural key. Records
    which match nothing are to be created. Existing records which are not
    matched are to be deleted.

    All records are validated before a plan is returned, so a malformed
    record never results in a partially applied plan.

    Raises:
        ReconciliationInputError: If a desired record is not an object, lacks
            its natural key (when it has no valid identity), has fields of
            wrong type, or if two desired records resolve to the same identity
            or natural key.
    """
    plan = ReconciliationPlan()
    by_natural_key: dict[Identity, Identity] = {}
    for i, item in enumerate(existing):
        identity = spec.identity_of(item, i)
        plan.existing.add(identity)
        if spec.field is not None:
            try:
                by_natural_key[spec.natural_key_of(item, i)] = identity
            except ReconciliationInputError:
                # not addressable by natural key, only by identity
                pass

    records: list[dict[str, Any]] = []
    identities: list[Identity | None] = []
    claimed: dict[Identity, int] = {}

    # explicit identities first, so that natural keys never steal them
    for i, record in enumerate(desired):
        if not isinstance(record, dict):
            raise ReconciliationInputError(
                spec.kind, f"record is not an object but {type_name(record)}", index=i
            )
        record = copy.deepcopy(record)
        identity = None
        if spec.field is not None and spec.field in record:
            identity = spec.identity_of(record, i)
            if identity in plan.existing:
                _claim(spec, claimed, identity, i)
            else:
                del record[spec.field]
                identity = None
        records.append(record)
        identities.append(identity)

    explicit = set(claimed)
    created: dict[Identity, int] = {}
    for i, record in enumerate(records):
        if identities[i] is not None:
            continue
        key = spec.natural_key_of(record, i)
        if spec.field is None:
            identity = key if key in plan.existing else None
        else:
            identity = by_natural_key.get(key)
            # renamed by ID, the natural key now names a new record
            if identity is not None and identity in explicit:
                identity = None
        if identity is None:
            if key in created:
                raise ReconciliationInputError(
                    spec.kind,
                    f"natural key {key!r} duplicates the record "
                    f"at index {created[key]}",
                    index=i,
                )
            created[key] = i
        else:
            _claim(spec, claimed, identity, i)
            if spec.field is not None:
                record[spec.field] = identity
        identities[i] = identity

    plan.records = [
        PlannedRecord(r, identity) for r, identity in zip(records, identities)
    ]
    plan.wanted = set(claimed)
    plan.to_delete = sorted(plan.existing - plan.wanted)
    return plan


def _claim(
    spec: IdentitySpec, claimed: dict[Identity, int], identity: Identity, index: int
) -> None:
    if identity in claimed:
        raise ReconciliationInputError(
            spec.kind,
            f"identity {identity!r} duplicates the record at index {claimed[identity]}",
            index=index,
        )
    claimed[identity] = index


def _nonzero(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value != 0


def diff_access_levels(
    kind: str,
    name: str,
    existing: Iterable[Mapping[str, Any]] | None,
    desired: Any,
    index: int | None = None,
) -> list[dict[str, Any]]:
    """
    Match desired access levels to existing ones, returning the desired
    access levels to be sent in a single update.

    An access level is either for a role (access_level), for a user
    (user_id), or for a group (group_id). A desired access level without an
    ID gets the ID of the existing one with the same role, user or group,
    checked in that order. Unknown IDs are removed. Existing access levels
    which are not wanted anymore are appended as {"id": ..., "_destroy": True}
    entries, sorted by ID.

    Only non-zero role, user and group values are used for matching.
    """
    where = f"{kind} {name}"
    if desired is None:
        desired = []
    if not isinstance(desired, list):
        raise ReconciliationInputError(
            where, f"is not a list but {type_name(desired)}", index=index, field=name
        )

    existing_ids: set[int] = set()
    lookups: dict[str, dict[int, int]] = {d: {} for d in ACCESS_LEVEL_DISCRIMINANTS}
    for level in existing or []:
        level_id = level.get("id")
        if not _nonzero(level_id):
            continue
        existing_ids.add(level_id)
        for discriminant in ACCESS_LEVEL_DISCRIMINANTS:
            value = level.get(discriminant) or 0
            if _nonzero(value):
                lookups[discriminant][value] = level_id

    levels: list[dict[str, Any]] = []
    wanted: dict[int, int] = {}
    for j, level in enumerate(desired):
        if not isinstance(level, dict):
            raise ReconciliationInputError(
                where,
                f"item {j} is not an object but {type_name(level)}",
                index=index,
                field=name,
            )
        level = copy.deepcopy(level)
        if "id" in level:
            level_id = _typed(where, level, "id", int, index)
            if level_id not in existing_ids:
                del level["id"]
        if "id" not in level:
            for discriminant in ACCESS_LEVEL_DISCRIMINANTS:
                value = level.get(discriminant)
                if _nonzero(value) and value in lookups[discriminant]:
                    level["id"] = lookups[discriminant][value]
                    break
        if "id" in level:
            if level["id"] in wanted:
                raise ReconciliationInputError(
                    where,
                    f"item {j} matches the same access level "
                    f"as item {wanted[level['id']]}",
                    index=index,
                    field=name,
                )
            wanted[level["id"]] = j
        levels.append(level)

    for level_id in sorted(existing_ids - set(wanted)):
        levels.append({"id": level_id, DESTROY: True})
    return levels
