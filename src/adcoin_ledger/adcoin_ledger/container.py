from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .auth.service import AuthorizationGate, AuthService
from .common.cache import TTLCache
from .core.constants import (
    DEFAULT_ADCOIN_TO_RM_RATE,
    DEFAULT_LEVEL_STEP,
    DEFAULT_POOL_LIMIT,
    DEFAULT_READ_RETRIES,
    DEFAULT_READ_RETRY_DELAY_SECONDS,
    DEFAULT_STAR_STEP,
    DEFAULT_VIEW_CACHE_TTL_SECONDS,
)
from .database.connection import DBConfig, DatabaseConnection
from .ledger.engine import TransactionEngine
from .participants.mysql_participant_repository import MySQLParticipantRepository
from .participants.repository import ParticipantRepository
from .transactions.history import TransactionHistoryService
from .transactions.mysql_ledger_store import MySQLLedgerStore
from .transactions.mysql_transaction_repository import MySQLTransactionRepository
from .transactions.repository import LedgerStore, TransactionRepository
from .views.calculator.step_calculator import StepLevelCalculator
from .views.service import LedgerViewService


@dataclass(frozen=True)
class LedgerSettings:
    level_step: int = DEFAULT_LEVEL_STEP
    star_step: int = DEFAULT_STAR_STEP
    adcoin_to_rm_rate: Decimal = field(default_factory=lambda: Decimal(DEFAULT_ADCOIN_TO_RM_RATE))
    pool_limit: int = DEFAULT_POOL_LIMIT
    view_cache_ttl_seconds: float = DEFAULT_VIEW_CACHE_TTL_SECONDS
    read_retries: int = DEFAULT_READ_RETRIES
    read_retry_delay_seconds: float = DEFAULT_READ_RETRY_DELAY_SECONDS

    @classmethod
    def from_settings(cls, settings) -> "LedgerSettings":
        """Read the ADCOIN_* / cache / retry constants of a config module."""
        return cls(
            level_step=int(getattr(settings, "ADCOIN_LEVEL_STEP", DEFAULT_LEVEL_STEP)),
            star_step=int(getattr(settings, "ADCOIN_STAR_STEP", DEFAULT_STAR_STEP)),
            adcoin_to_rm_rate=Decimal(str(getattr(settings, "ADCOIN_TO_RM_RATE", DEFAULT_ADCOIN_TO_RM_RATE))),
            pool_limit=int(getattr(settings, "ADCOIN_POOL_LIMIT", DEFAULT_POOL_LIMIT)),
            view_cache_ttl_seconds=float(getattr(settings, "VIEW_CACHE_TTL_SECONDS", DEFAULT_VIEW_CACHE_TTL_SECONDS)),
            read_retries=int(getattr(settings, "READ_RETRIES", DEFAULT_READ_RETRIES)),
            read_retry_delay_seconds=float(
                getattr(settings, "READ_RETRY_DELAY_SECONDS", DEFAULT_READ_RETRY_DELAY_SECONDS)
            ),
        )


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    settings: LedgerSettings

    participants_repo: ParticipantRepository
    transactions_repo: TransactionRepository
    ledger_store: LedgerStore

    auth_service: AuthService
    authorization_gate: AuthorizationGate
    engine: TransactionEngine
    history_service: TransactionHistoryService
    view_service: LedgerViewService


def assemble_container(
    *,
    participants_repo: ParticipantRepository,
    transactions_repo: TransactionRepository,
    ledger_store: LedgerStore,
    settings: Optional[LedgerSettings] = None,
    conn: Optional[DatabaseConnection] = None,
    engine: Optional[TransactionEngine] = None,
) -> Container:
    """Wire services over any repository implementations (MySQL or in-memory)."""
    settings = settings or LedgerSettings()

    view_service = LedgerViewService(
        participants_repo,
        transactions_repo,
        calculator=StepLevelCalculator(level_step=settings.level_step, star_step=settings.star_step),
        adcoin_to_rm_rate=settings.adcoin_to_rm_rate,
        pool_limit=settings.pool_limit,
        cache=TTLCache(settings.view_cache_ttl_seconds),
        read_retries=settings.read_retries,
        retry_delay=settings.read_retry_delay_seconds,
    )

    return Container(
        conn=conn,
        settings=settings,
        participants_repo=participants_repo,
        transactions_repo=transactions_repo,
        ledger_store=ledger_store,
        auth_service=AuthService(participants_repo),
        authorization_gate=AuthorizationGate(participants_repo),
        engine=engine or TransactionEngine(ledger_store),
        history_service=TransactionHistoryService(transactions_repo),
        view_service=view_service,
    )


def build_container(*, db_config: dict, ledger_settings: Optional[LedgerSettings] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble_container(
        participants_repo=MySQLParticipantRepository(conn),
        transactions_repo=MySQLTransactionRepository(conn),
        ledger_store=MySQLLedgerStore(conn),
        settings=ledger_settings,
        conn=conn,
    )
