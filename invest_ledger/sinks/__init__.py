"""Output sinks for publishing and exporting ledger data."""

from invest_ledger.sinks.json_file import JsonFileSink
from invest_ledger.sinks.kafka import KafkaSink
from invest_ledger.sinks.postgres import PostgresSink

__all__ = ["JsonFileSink", "KafkaSink", "PostgresSink"]
