"""Tests for JSON backup/restore and CSV exchange."""
import csv
import io
import json

import pytest
from datetime import date, datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from subtracker.application.categories import CreateCategoryUseCase
from subtracker.application.export_import import (
    CSV_COLUMNS, export_csv, export_json, import_csv, import_json, to_camel, to_snake,
)
from subtracker.application.household import CreateMemberUseCase
from subtracker.application.settings import UpdateSettingsUseCase, load_settings
from subtracker.application.subscriptions import CreateSubscriptionUseCase, RecordPriceChangeUseCase
from subtracker.domain.subscription import AddOn
from subtracker.infrastructure.db.repository import (
    CategoryRepository, HouseholdMemberRepository, SubscriptionRepository,
)
from subtracker.infrastructure.db.session import Base

TODAY = date(2025, 5, 1)
NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def other_session():
    """Second, empty database: the device a backup is restored on"""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False},
                           poolclass=StaticPool)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def populated(db_session):
    cat_id = CreateCategoryUseCase(db_session).execute(name="Streaming", icon="tv")
    member_id = CreateMemberUseCase(db_session).execute(name="Alex", role="admin")
    sub_id = CreateSubscriptionUseCase(db_session).execute(
        name="Netflix", next_renewal_date=date(2025, 5, 15), today=TODAY,
        amount=15.0, category_id=cat_id, payer_id=member_id, tags=["tv", "family"],
        add_ons=[AddOn(id="a1", name="Extra member", amount=7.99)],
    )
    RecordPriceChangeUseCase(db_session).execute(sub_id, 17.5, date(2025, 6, 1), note="Price notice")
    UpdateSettingsUseCase(db_session).execute(default_currency="EUR", theme="dark")
    return {"sub_id": sub_id, "cat_id": cat_id, "member_id": member_id}


def test_key_case_conversion():
    assert to_camel("next_renewal_date") == "nextRenewalDate"
    assert to_snake("nextRenewalDate") == "next_renewal_date"
    assert to_camel("name") == "name"


# ---- JSON ----

class TestExportJson:
    def test_snapshot_shape(self, db_session, populated):
        data = json.loads(export_json(db_session, now=NOW))
        assert data["version"] == 1
        assert data["exportDate"] == NOW.isoformat()
        assert len(data["subscriptions"]) == 1
        assert len(data["householdMembers"]) == 1
        assert len(data["categories"]) == 1
        sub = data["subscriptions"][0]
        assert sub["nextRenewalDate"] == "2025-05-15"
        assert sub["priceHistory"][-1] == {"date": "2025-06-01", "amount": 17.5, "note": "Price notice"}
        assert sub["addOns"][0]["billingCycle"] == "monthly"
        assert data["settings"]["defaultCurrency"] == "EUR"

    def test_empty_database(self, db_session):
        data = json.loads(export_json(db_session))
        assert data["subscriptions"] == []
        assert data["settings"] is None


class TestImportJson:
    def test_restore_on_empty_database(self, db_session, populated, other_session):
        result = import_json(other_session, export_json(db_session))
        assert result.success
        assert (result.subscriptions_imported, result.members_imported, result.categories_imported) == (1, 1, 1)

        original = SubscriptionRepository(db_session).get(populated["sub_id"])
        restored = SubscriptionRepository(other_session).get(populated["sub_id"])
        assert restored.name == original.name
        assert restored.amount == 17.5
        assert restored.price_history == original.price_history
        assert restored.add_ons == original.add_ons
        assert restored.tags == ["tv", "family"]
        assert restored.payer_id == populated["member_id"]
        assert load_settings(other_session).theme == "dark"

    def test_import_replaces_existing_collections(self, db_session, populated):
        backup = export_json(db_session)
        CreateSubscriptionUseCase(db_session).execute(name="Spotify", next_renewal_date=TODAY, today=TODAY)
        CreateMemberUseCase(db_session).execute(name="Sam")

        data = json.loads(backup)
        data["subscriptions"][0]["id"] = "restored-sub"
        data["householdMembers"][0]["id"] = "restored-member"
        data["categories"][0]["id"] = "restored-cat"
        assert import_json(db_session, json.dumps(data)).success

        assert [s.name for s in SubscriptionRepository(db_session).get_all()] == ["Netflix"]
        assert [m.id for m in HouseholdMemberRepository(db_session).get_all()] == ["restored-member"]
        assert [c.id for c in CategoryRepository(db_session).get_all()] == ["restored-cat"]

    def test_settings_kept_when_file_has_none(self, db_session, populated):
        text = json.dumps({"version": 1, "subscriptions": []})
        result = import_json(db_session, text)
        assert result.success
        assert result.subscriptions_imported == 0
        assert load_settings(db_session).default_currency == "EUR"

    @pytest.mark.parametrize("text, error", [
        ("{not json", "Invalid JSON"),
        ("[]", "Invalid export format"),
        ('{"subscriptions": []}', "Invalid export format"),
        ('{"version": 1, "subscriptions": {}}', "Invalid export format"),
    ])
    def test_malformed_files(self, db_session, text, error):
        result = import_json(db_session, text)
        assert not result.success
        assert result.errors == [error]

    def test_bad_records_leave_data_untouched(self, db_session, populated):
        text = json.dumps({"version": 1, "subscriptions": [{"name": "No id or renewal"}]})
        result = import_json(db_session, text)
        assert not result.success
        assert result.errors[0].startswith("Import failed:")
        assert SubscriptionRepository(db_session).count() == 1

    @pytest.mark.parametrize("patch, error", [
        ({"billingCycle": "fortnightly"}, "Import failed: Unknown billing cycle: fortnightly"),
        ({"amount": "15"}, "Import failed: amount must be a number"),
        ({"taxAmount": True}, "Import failed: taxAmount must be a number"),
        ({"currency": "XYZ"}, "Import failed: Unsupported currency: XYZ"),
        ({"alertDaysBefore": [2]}, "Import failed: Unsupported alert lead times: [2]"),
    ])
    def test_invalid_subscription_rejected_before_replace(self, db_session, populated, patch, error):
        data = json.loads(export_json(db_session))
        data["subscriptions"][0].update(patch, id="replacement")
        result = import_json(db_session, json.dumps(data))
        assert not result.success
        assert result.errors == [error]
        assert [s.id for s in SubscriptionRepository(db_session).get_all()] == [populated["sub_id"]]
        assert HouseholdMemberRepository(db_session).count() == 1


# ---- CSV ----

class TestExportCsv:
    def test_header_and_values(self, db_session, populated):
        rows = list(csv.DictReader(io.StringIO(export_csv(db_session))))
        assert len(rows) == 1
        row = rows[0]
        assert row["amount"] == "17.5"
        assert row["tags"] == "tv;family"
        assert row["autoRenew"] == "yes"
        assert row["isShared"] == "no"
        assert row["taxAmount"] == ""
        assert row["nextRenewalDate"] == "2025-05-15"

    def test_header_only_when_empty(self, db_session):
        assert export_csv(db_session).splitlines() == [",".join(CSV_COLUMNS)]

    def test_whole_numbers_without_decimals(self, db_session):
        CreateSubscriptionUseCase(db_session).execute(
            name="Cloud", next_renewal_date=TODAY, today=TODAY, amount=15.0, tax_amount=1.25,
        )
        row = next(csv.DictReader(io.StringIO(export_csv(db_session))))
        assert row["amount"] == "15"
        assert row["taxAmount"] == "1.25"


class TestImportCsv:
    def test_appends_rows_with_defaults(self, db_session, populated):
        text = (
            "name,amount,billingCycle,nextRenewalDate,tags,autoRenew\n"
            "Spotify,10.99,monthly,2025-05-20,music;family,yes\n"
            "iCloud,2.99,,,,\n"
        )
        result = import_csv(db_session, text, today=TODAY)
        assert result.success
        assert result.subscriptions_imported == 2
        assert result.errors == []

        subs = {s.name: s for s in SubscriptionRepository(db_session).get_all()}
        assert set(subs) == {"Netflix", "Spotify", "iCloud"}
        assert subs["Spotify"].tags == ["music", "family"]
        assert subs["Spotify"].auto_renew is True
        assert subs["iCloud"].billing_cycle == "monthly"
        assert subs["iCloud"].next_renewal_date == TODAY
        assert subs["iCloud"].auto_renew is False
        assert subs["iCloud"].alert_days_before == [7, 3, 1]

    def test_invalid_rows_reported_and_skipped(self, db_session):
        text = (
            "name,amount,billingCycle,status,nextRenewalDate\n"
            "Good,5,monthly,active,2025-05-10\n"
            "Daily,5,daily,active,\n"
            "Zombie,5,monthly,undead,\n"
            ",5,monthly,active,\n"
            "BadDate,5,monthly,active,2025-13-01\n"
            "BadAmount,five,monthly,active,\n"
        )
        result = import_csv(db_session, text, today=TODAY)
        assert result.success
        assert result.subscriptions_imported == 1
        assert result.errors[0] == "Row 3: unknown billing cycle 'daily'"
        assert result.errors[1] == "Row 4: unknown status 'undead'"
        assert result.errors[2] == "Skipping row without name or amount"
        assert result.errors[3].startswith("Row 6:")
        assert result.errors[4].startswith("Row 7:")
        assert [s.name for s in SubscriptionRepository(db_session).get_all()] == ["Good"]

    def test_rows_breaking_subscription_rules_skipped(self, db_session):
        text = (
            "name,amount,currency,taxAmount\n"
            "Gym,-12,USD,\n"
            "Cloud,5,XYZ,\n"
            "Music,10,EUR,-1\n"
            "Forever,inf,USD,\n"
            "News,8,GBP,0.5\n"
        )
        result = import_csv(db_session, text, today=TODAY)
        assert result.success
        assert result.errors == [
            "Row 2: Amount cannot be negative",
            "Row 3: Unsupported currency: XYZ",
            "Row 4: Tax cannot be negative",
            "Row 5: amount must be a number",
        ]
        subs = SubscriptionRepository(db_session).get_all()
        assert [(s.name, s.amount, s.currency) for s in subs] == [("News", 8.0, "GBP")]

    def test_missing_name_column(self, db_session):
        result = import_csv(db_session, "title,amount\nNetflix,10\n")
        assert not result.success
        assert SubscriptionRepository(db_session).count() == 0

    def test_empty_file(self, db_session):
        assert not import_csv(db_session, "").success
