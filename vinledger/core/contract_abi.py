"""ABI of the vehicle record contract (functions and events this client knows about)."""
from typing import Any, Dict, List, Optional


def _param(type_: str, name: str, indexed: Optional[bool] = None) -> Dict[str, Any]:
    p: Dict[str, Any] = {"internalType": type_, "name": name, "type": type_}
    if indexed is not None:
        p["indexed"] = indexed
    return p


def _function(name: str, inputs: list, outputs: list, mutability: str) -> Dict[str, Any]:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": outputs,
        "stateMutability": mutability,
        "type": "function",
    }


def _event(name: str, inputs: list) -> Dict[str, Any]:
    return {"anonymous": False, "inputs": inputs, "name": name, "type": "event"}


_RECORD_FIELDS = [
    _param("string", "make"),
    _param("string", "model"),
    _param("uint16", "year"),
    _param("string", "currentOwnerName"),
    _param("uint256", "createdAt"),
    _param("bool", "serviced"),
]

CONTRACT_ABI: List[Dict[str, Any]] = [
    {"inputs": [], "stateMutability": "nonpayable", "type": "constructor"},
    _event(
        "OwnerChanged",
        [_param("address", "oldOwner", True), _param("address", "newOwner", True)],
    ),
    _event(
        "RecordAdded",
        [
            _param("uint256", "index", True),
            _param("string", "vin", False),
            _param("string", "make", False),
            _param("string", "model", False),
            _param("uint16", "year", False),
            _param("string", "currentOwner", False),
        ],
    ),
    _event("RecordRemoved", [_param("uint256", "index", True), _param("string", "vin", False)]),
    _event(
        "RecordServiced",
        [
            _param("uint256", "index", True),
            _param("string", "vin", False),
            _param("uint256", "when", False),
        ],
    ),
    _function(
        "addRecord",
        [
            _param("string", "vin"),
            _param("string", "make"),
            _param("string", "model"),
            _param("uint16", "year"),
            _param("string", "currentOwnerName"),
        ],
        [],
        "nonpayable",
    ),
    _function("changeOwner", [_param("address", "newOwner")], [], "nonpayable"),
    _function(
        "getRecordByIndex",
        [_param("uint256", "index")],
        [_param("string", "vin")] + _RECORD_FIELDS,
        "view",
    ),
    _function(
        "getRecordByVIN",
        [_param("string", "vin")],
        [_param("uint256", "index")] + _RECORD_FIELDS,
        "view",
    ),
    _function("getRecordsCount", [], [_param("uint256", "")], "view"),
    _function("markServiced", [_param("uint256", "index")], [], "nonpayable"),
    _function("owner", [], [_param("address", "")], "view"),
    _function("removeRecord", [_param("uint256", "index")], [], "nonpayable"),
]
