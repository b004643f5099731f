# Overview: Pytest coverage for the ledger and sync CLI commands.

from maiduka.services.savings_service import deposit

from conftest import SHOP_ID


class TestLedgerCommands:
    def test_init_db(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["ledger", "init-db"])
        assert result.exit_code == 0
        assert "PASS Ledger tables ready" in result.output

    def test_verify_savings(self, app, db_session):
        deposit(SHOP_ID, "100")
        deposit(SHOP_ID, "50")

        result = app.test_cli_runner().invoke(args=["ledger", "verify-savings", "--shop-id", SHOP_ID])

        assert result.exit_code == 0
        assert "Transactions replayed: 2" in result.output
        assert f"PASS Savings ledger for shop {SHOP_ID} reconciles" in result.output


class TestSyncCommands:
    def test_pending_and_mark_synced(self, app, db_session, product):
        runner = app.test_cli_runner()

        listed = runner.invoke(args=["sync", "pending", "--entity", "product"])
        assert listed.exit_code == 0
        assert product.id in listed.output
        assert "1 pending product record(s)" in listed.output

        marked = runner.invoke(args=[
            "sync", "mark-synced", "--entity", "product", "--id", product.id, "--at", "2026-01-01T00:00:00Z",
        ])
        assert marked.exit_code == 0
        assert "PASS Marked 1 of 1 product record(s) synced" in marked.output

        db_session.refresh(product)
        assert product.sync_status == "synced"
        assert product.last_synced_at == 1767225600000

        empty = runner.invoke(args=["sync", "pending", "--entity", "product"])
        assert "No pending product records." in empty.output

    def test_bad_timestamp(self, app, db_session, product):
        result = app.test_cli_runner().invoke(args=[
            "sync", "mark-synced", "--entity", "product", "--id", product.id, "--at", "yesterday",
        ])
        assert result.exit_code == 1
        assert "FAIL Invalid timestamp" in result.output

    def test_unknown_entity(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["sync", "pending", "--entity", "invoice"])
        assert result.exit_code != 0
