"""Example: drive the ledger through the service layer (no Flask).

Controllers are thin; the rules live in the engine and the view service.
"""

import importlib

from config import get_settings_module

from src.adcoin_ledger.adcoin_ledger.container import LedgerSettings, build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, ledger_settings=LedgerSettings.from_settings(settings))

    tx = container.engine.award(
        receiver_id="stu-003",
        receiver_kind="student",
        amount=50,
        verified_by="staff-admin",
        description="quiz bonus",
    )
    print("awarded:", tx.to_dict())

    for row in container.view_service.ranking(limit=5):
        print(row.rank, row.name, row.balance, "level", row.level)


if __name__ == "__main__":
    main()
