import json
from pathlib import Path
from typing import Any, Dict, List, Union


def load_abi(file_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load a contract ABI from disk.

    Accepts both a bare ABI list and an explorer API response that wraps
    the ABI under "result" (as a list or as a JSON encoded string).

    Raises:
        ValueError: If the ABI format is invalid
    """
    with open(file_path) as f:
        abi_data = json.load(f)
    if isinstance(abi_data, dict):
        abi_data = abi_data["result"]
        if isinstance(abi_data, str):
            abi_data = json.loads(abi_data)
    if isinstance(abi_data, list):
        return abi_data
    raise ValueError(f"Invalid ABI format in {file_path}")


def find_function(abi: List[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """Return the ABI entry of the function called `name`."""
    for item in abi:
        if item.get("type") == "function" and item.get("name") == name:
            return item
    raise ValueError(f"Function ABI not found: {name}")
