"""Tests for serialization and output sinks."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from confluent_kafka import KafkaException

from invest_ledger.config import KafkaConfig
from invest_ledger.exceptions import SinkError
from invest_ledger.models import Account, Movement, MovementType
from invest_ledger.service import movement_event
from invest_ledger.sinks import JsonFileSink, KafkaSink, PostgresSink
from invest_ledger.sinks.serialization import serialize_value, to_dict

CREATED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def movement() -> Movement:
    return Movement(
        movement_id="mov-1",
        account_id="acct-1",
        movement_type=MovementType.DEPOSIT,
        amount=Decimal("1000.00"),
        created_at=CREATED,
        description="Depósito via PIX",
        correlation_id="charge-1",
        sequence=1,
    )


@pytest.fixture
def account() -> Account:
    return Account(account_id="acct-1", owner_id="owner-1", created_at=CREATED)


class TestSerialization:
    """Tests for JSON-ready conversion."""

    def test_serialize_values(self) -> None:
        assert serialize_value(Decimal("8.35")) == "8.35"
        assert serialize_value(MovementType.YIELD_CREDIT) == "YIELD_CREDIT"
        assert serialize_value(CREATED) == "2024-03-01T12:00:00+00:00"
        assert serialize_value(date(2024, 6, 4)) == "2024-06-04"
        assert serialize_value([Decimal("1.00"), None]) == ["1.00", None]

    def test_movement_to_dict(self, movement: Movement) -> None:
        data = to_dict(movement)

        assert data["amount"] == "1000.00"
        assert data["movement_type"] == "DEPOSIT"
        assert data["description"] == "Depósito via PIX"
        assert data["sequence"] == 1

    def test_account_to_dict(self, account: Account) -> None:
        data = to_dict(account)

        assert data["principal"] == "0.00"
        assert data["first_qualifying_deposit_at"] is None
        assert data["owner_id"] == "owner-1"

    def test_event_nests_data(self, movement: Movement) -> None:
        data = to_dict(movement_event(movement))
        assert data["event_type"] == "movement.deposit"
        assert data["data"]["amount"] == "1000.00"
        assert data["metadata"] == {}

    def test_non_dataclass(self) -> None:
        assert to_dict({"amount": Decimal("1.50")}) == {"amount": "1.50"}
        assert to_dict(42) == {"value": "42"}


class TestJsonFileSink:
    """Tests for JSON file output."""

    def test_write_batch(self, tmp_path, movement: Movement) -> None:
        sink = JsonFileSink(tmp_path / "out")

        path = sink.write_batch("movements", [movement])

        assert path == tmp_path / "out" / "movements.json"
        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[0]["movement_id"] == "mov-1"
        assert records[0]["description"] == "Depósito via PIX"

    def test_pretty_output(self, tmp_path, account: Account) -> None:
        sink = JsonFileSink(tmp_path, pretty=True)
        path = sink.write_batch("accounts", [account])
        assert "\n  " in path.read_text(encoding="utf-8")

    def test_publish_appends_json_lines(self, tmp_path, movement: Movement) -> None:
        sink = JsonFileSink(tmp_path)

        sink.publish(movement_event(movement))
        sink.publish(movement_event(movement))

        lines = (tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["subject"] == "mov-1"

    def test_write_failure(self, tmp_path, movement: Movement) -> None:
        sink = JsonFileSink(tmp_path)
        (tmp_path / "movements.json").mkdir()

        with pytest.raises(SinkError):
            sink.write_batch("movements", [movement])


class TestKafkaSink:
    """Tests for the Kafka sink with a mocked producer."""

    @patch("invest_ledger.sinks.kafka.Producer")
    def test_producer_config(self, mock_producer_cls) -> None:
        KafkaSink("broker:9092")

        config = mock_producer_cls.call_args[0][0]
        assert config["bootstrap.servers"] == "broker:9092"
        assert config["acks"] == "all"

    @patch("invest_ledger.sinks.kafka.Producer")
    def test_publish_keys_by_account(self, mock_producer_cls, movement: Movement) -> None:
        producer = mock_producer_cls.return_value
        sink = KafkaSink(KafkaConfig(movements_topic="test.movements"))

        sink.publish(movement_event(movement))

        kwargs = producer.produce.call_args.kwargs
        assert kwargs["topic"] == "test.movements"
        assert kwargs["key"] == b"acct-1"
        value = json.loads(kwargs["value"].decode("utf-8"))
        assert value["data"]["movement_id"] == "mov-1"
        assert sink.stats.sent == 1
        producer.poll.assert_called_with(0)

    @patch("invest_ledger.sinks.kafka.Producer")
    def test_unkeyed_topic(self, mock_producer_cls, movement: Movement) -> None:
        producer = mock_producer_cls.return_value
        sink = KafkaSink("broker:9092")

        sink.send("audit", movement)

        assert producer.produce.call_args.kwargs["key"] is None

    @patch("invest_ledger.sinks.kafka.Producer")
    def test_write_batch_flushes(self, mock_producer_cls, account: Account) -> None:
        producer = mock_producer_cls.return_value
        sink = KafkaSink("broker:9092")

        sink.write_batch("invest.accounts", [account, account])

        assert producer.produce.call_count == 2
        assert producer.produce.call_args.kwargs["key"] == b"acct-1"
        producer.flush.assert_called_once()

    @pytest.mark.parametrize("error", [BufferError("queue full"), KafkaException("broker down")])
    @patch("invest_ledger.sinks.kafka.Producer")
    def test_produce_failure(self, mock_producer_cls, error, movement: Movement) -> None:
        mock_producer_cls.return_value.produce.side_effect = error
        sink = KafkaSink("broker:9092")

        with pytest.raises(SinkError):
            sink.publish(movement_event(movement))
        assert sink.stats.failed == 1
        assert sink.stats.sent == 0

    @patch("invest_ledger.sinks.kafka.Producer")
    def test_delivery_callback(self, mock_producer_cls) -> None:
        sink = KafkaSink("broker:9092")
        msg = MagicMock()
        msg.partition.return_value = 0
        msg.offset.return_value = 7

        sink._delivery_callback(None, msg)
        sink._delivery_callback("timeout", msg)

        assert sink.stats.delivered == 1
        assert sink.stats.failed == 1
        assert sink.stats.success_rate == 0.5

    @patch("invest_ledger.sinks.kafka.Producer")
    def test_close_flushes(self, mock_producer_cls) -> None:
        sink = KafkaSink("broker:9092")
        sink.close()
        mock_producer_cls.return_value.flush.assert_called_once()
        assert sink.stats.end_time is not None


class PsycopgError(Exception):
    pass


@pytest.fixture
def mock_psycopg():
    with patch("invest_ledger.sinks.postgres.psycopg") as mocked:
        mocked.Error = PsycopgError
        yield mocked


class TestPostgresSink:
    """Tests for the PostgreSQL sink with a mocked driver."""

    def test_connect_failure(self, mock_psycopg) -> None:
        mock_psycopg.connect.side_effect = PsycopgError("refused")
        with pytest.raises(SinkError):
            PostgresSink("postgresql://localhost/invest_ledger")

    def test_movements_are_never_updated(self, mock_psycopg) -> None:
        sql = PostgresSink("dsn")._build_insert("movements")

        assert sql.startswith("INSERT INTO movements (movement_id, account_id")
        assert sql.endswith("ON CONFLICT (movement_id) DO NOTHING")

    def test_accounts_are_upserted(self, mock_psycopg) -> None:
        sql = PostgresSink("dsn")._build_insert("accounts")

        assert "ON CONFLICT (account_id) DO UPDATE SET" in sql
        assert "principal = EXCLUDED.principal" in sql
        assert "owner_id = EXCLUDED" not in sql

    def test_write_batch(self, mock_psycopg, movement: Movement) -> None:
        conn = mock_psycopg.connect.return_value
        cursor = conn.cursor.return_value.__enter__.return_value
        sink = PostgresSink("dsn")

        sink.write_batch("movements", [movement])

        sql, rows = cursor.executemany.call_args[0]
        assert sql.startswith("INSERT INTO movements")
        assert rows == [
            ("mov-1", "acct-1", "DEPOSIT", Decimal("1000.00"), CREATED, "Depósito via PIX", "charge-1", 1)
        ]
        conn.commit.assert_called_once()

    def test_write_batch_dict_records(self, mock_psycopg) -> None:
        conn = mock_psycopg.connect.return_value
        cursor = conn.cursor.return_value.__enter__.return_value
        sink = PostgresSink("dsn")

        sink.write_batch("accounts", [{"account_id": "acct-1", "owner_id": "owner-1"}])

        rows = cursor.executemany.call_args[0][1]
        assert rows[0][:3] == ("acct-1", "owner-1", None)

    def test_write_failure_rolls_back(self, mock_psycopg, movement: Movement) -> None:
        conn = mock_psycopg.connect.return_value
        conn.cursor.return_value.__enter__.return_value.executemany.side_effect = PsycopgError("boom")
        sink = PostgresSink("dsn")

        with pytest.raises(SinkError):
            sink.write_batch("movements", [movement])
        conn.rollback.assert_called_once()

    def test_skips_empty_and_unknown(self, mock_psycopg) -> None:
        conn = mock_psycopg.connect.return_value
        sink = PostgresSink("dsn")

        sink.write_batch("movements", [])
        sink.write_batch("investors", [{"investor_id": "x"}])

        conn.cursor.assert_not_called()

    def test_write_all_in_foreign_key_order(self, mock_psycopg, movement: Movement, account: Account) -> None:
        sink = PostgresSink("dsn")
        written = []
        sink.write_batch = lambda entity_type, records: written.append(entity_type)

        sink.write_all({"movements": [movement], "investors": [], "accounts": [account]})

        assert written == ["accounts", "movements"]

    def test_create_schema(self, mock_psycopg) -> None:
        conn = mock_psycopg.connect.return_value
        cursor = conn.cursor.return_value.__enter__.return_value

        PostgresSink("dsn").create_schema()

        assert "CREATE TABLE IF NOT EXISTS movements" in cursor.execute.call_args[0][0]
        conn.commit.assert_called_once()
