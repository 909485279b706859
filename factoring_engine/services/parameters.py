"""Parameter resolution backed by the settings store and company overrides"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from factoring_engine.domain.exceptions import NotFoundError, ValidationError
from factoring_engine.domain.models import Actor, LendingSettings, ParameterOverride, ResolvedParameters
from factoring_engine.domain.parameters import normalize_lending_settings, resolve_parameters
from factoring_engine.infrastructure.database.repositories import (
    CompanyParameterRepository,
    RequestRepository,
    SqlSettingsStore,
)
from factoring_engine.infrastructure.database.session import unit_of_work
from factoring_engine.utils.date_utils import utc_now
from factoring_engine.utils.numbers import round_half_up, to_number


class SettingsStore(Protocol):
    def get(self) -> LendingSettings: ...

    def put(self, lending: LendingSettings, actor_id: Optional[str], now: datetime) -> LendingSettings: ...


class OverrideSource(Protocol):
    def get(self, company_id: uuid.UUID) -> Optional[ParameterOverride]: ...


class ParameterResolver:
    """
    Resolves effective parameters for a company.

    Settings are re-read on every call; a concurrent settings update is
    picked up by the next resolution.
    """

    def __init__(self, settings_store: SettingsStore, overrides: OverrideSource):
        self.settings_store = settings_store
        self.overrides = overrides

    @classmethod
    def for_session(cls, db: Session) -> "ParameterResolver":
        return cls(SqlSettingsStore(db), CompanyParameterRepository(db))

    def resolve(self, company_id: uuid.UUID, company_type: Optional[str]) -> ResolvedParameters:
        lending = self.settings_store.get()
        override = self.overrides.get(company_id)
        return resolve_parameters(lending, override, company_type)


def resolve_company_parameters(db: Session, company_id: uuid.UUID) -> ResolvedParameters:
    company = RequestRepository(db).get_company(company_id)
    if company is None:
        raise NotFoundError("Empresa no encontrada")
    return ParameterResolver.for_session(db).resolve(company.id, company.type)


def get_lending_settings(db: Session) -> LendingSettings:
    return SqlSettingsStore(db).get()


def update_lending_settings(db: Session, raw: Dict[str, Any], actor: Actor) -> LendingSettings:
    """Replace the settings document; fields not provided keep their defaults"""
    lending = normalize_lending_settings(raw)
    with unit_of_work(db):
        SqlSettingsStore(db).put(lending, actor.user_id, utc_now())
    return lending


def _optional_number(value: Any, field: str, minimum: float, maximum: Optional[float] = None) -> Optional[float]:
    if value is None:
        return None
    numeric = to_number(value)
    if numeric is None or numeric < minimum or (maximum is not None and numeric > maximum):
        raise ValidationError(f"Valor inválido para {field}")
    return numeric


def upsert_company_parameters(
    db: Session,
    company_id: uuid.UUID,
    *,
    discount_rate: Any = None,
    advance_pct: Any = None,
    operation_days: Any = None,
    actor: Actor,
) -> ParameterOverride:
    """
    Store per-company overrides; each field is independent and None resets it.

    Raises:
        NotFoundError: company does not exist
        ValidationError: out-of-range value
    """
    days = _optional_number(operation_days, "operation_days", 1)
    override = ParameterOverride(
        company_id=company_id,
        discount_rate=_optional_number(discount_rate, "discount_rate", 0, 200),
        advance_pct=_optional_number(advance_pct, "advance_pct", 0, 100),
        operation_days=round_half_up(days) if days is not None else None,
    )
    with unit_of_work(db):
        if RequestRepository(db).get_company(company_id) is None:
            raise NotFoundError("Empresa no encontrada")
        CompanyParameterRepository(db).upsert(override, actor.user_id, utc_now())
    return override


def delete_company_parameters(db: Session, company_id: uuid.UUID) -> bool:
    """Reset a company to segment/global defaults"""
    with unit_of_work(db):
        return CompanyParameterRepository(db).delete(company_id)
