# eln_core/services/record_store.py
"""
Table-oriented record store over the Django ORM.

Records go in and out as plain dicts keyed by field name; foreign keys
are represented by their primary key value. This is the only place that
knows how table names map to models.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from django.core.exceptions import FieldDoesNotExist
from django.db import models
from django.utils import timezone

from eln_core.lifecycle import ValidationError
from eln_core.models import (
    ChemicalInventoryItem,
    ChemicalOrder,
    Experiment,
    PlasmidOrder,
    Product,
    Project,
    Protocol,
)


TABLE_MODEL: Dict[str, Type[models.Model]] = {
    "projects": Project,
    "protocols": Protocol,
    "experiments": Experiment,
    "chemical_inventory": ChemicalInventoryItem,
    "chemical_orders": ChemicalOrder,
    "plasmid_orders": PlasmidOrder,
    "products": Product,
}


class RecordNotFound(Exception):
    def __init__(self, table: str, pk: Any):
        self.table = table
        self.pk = pk
        super().__init__(f"No {table} record with id {pk}")


def model_for(table: str) -> Type[models.Model]:
    try:
        return TABLE_MODEL[table]
    except KeyError:
        raise ValidationError(f"Unknown table: {table}", field="table")


def to_record(instance: models.Model) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for field in instance._meta.concrete_fields:
        record[field.name] = getattr(instance, field.attname)
    return record


def _to_model_kwargs(model: Type[models.Model], fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map record keys to ORM kwargs.

    Foreign keys given as raw ids are written through their attname
    (created_by -> created_by_id); model instances are passed unchanged.
    """
    out: Dict[str, Any] = {}
    for name, value in fields.items():
        try:
            field = model._meta.get_field(name)
        except FieldDoesNotExist:
            raise ValidationError(f"Unknown field for {model.__name__}: {name}", field=name)

        if field.is_relation and value is not None and not isinstance(value, models.Model):
            out[field.attname] = value
        else:
            out[name] = value
    return out


class DjangoRecordStore:
    """
    get / list / insert / update / delete over the ELN tables.

    `for_update=True` on get() locks the row for the surrounding
    transaction.
    """

    def get(self, table: str, pk: Any, *, for_update: bool = False) -> Dict[str, Any]:
        return to_record(self.get_instance(table, pk, for_update=for_update))

    def get_instance(self, table: str, pk: Any, *, for_update: bool = False) -> models.Model:
        model = model_for(table)
        qs = model.objects.all()
        if for_update:
            qs = qs.select_for_update()
        instance = qs.filter(pk=pk).first()
        if instance is None:
            raise RecordNotFound(table, pk)
        return instance

    def list(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        model = model_for(table)
        qs = model.objects.filter(**dict(filters or {}))
        if order:
            qs = qs.order_by(*order)
        if limit is not None:
            qs = qs[:limit]
        return [to_record(obj) for obj in qs]

    def count(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> int:
        return model_for(table).objects.filter(**dict(filters or {})).count()

    def business_ids(self, table: str, prefix: str) -> List[str]:
        model = model_for(table)
        return list(
            model.objects.filter(business_id__startswith=f"{prefix}-").values_list("business_id", flat=True)
        )

    def insert(self, table: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        model = model_for(table)
        instance = model.objects.create(**_to_model_kwargs(model, fields))
        return to_record(instance)

    def update(self, table: str, pk: Any, patch: Mapping[str, Any]) -> Dict[str, Any]:
        model = model_for(table)
        if patch:
            kwargs = _to_model_kwargs(model, patch)
            # queryset.update() skips auto_now
            if any(f.name == "updated_at" for f in model._meta.concrete_fields):
                kwargs.setdefault("updated_at", timezone.now())
            updated = model.objects.filter(pk=pk).update(**kwargs)
            if not updated:
                raise RecordNotFound(table, pk)
        return self.get(table, pk)

    def delete(self, table: str, pk: Any) -> None:
        model = model_for(table)
        deleted, _ = model.objects.filter(pk=pk).delete()
        if not deleted:
            raise RecordNotFound(table, pk)


store = DjangoRecordStore()
