"""Output sinks for exporting ledger views."""

from debt_ledger.sinks.json_file import JsonFileSink
from debt_ledger.sinks.serialization import to_dict, to_json_dict

__all__ = ["JsonFileSink", "to_dict", "to_json_dict"]
