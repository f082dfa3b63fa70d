"""Helpers for Sui coin-type identifiers ("0xabc...::module::TOKEN")."""

from __future__ import annotations


def extract_contract_address(coin_type: str) -> str:
    """Package id of a coin type: "0xabc::module::TOKEN" -> "0xabc"."""
    head = coin_type.split("::")[0]
    return head or coin_type


def extract_symbol(coin_type: str) -> str:
    """Symbol of a coin type: "0xabc::module::TOKEN" -> "TOKEN"."""
    tail = coin_type.split("::")[-1]
    return tail or coin_type


def is_coin_type(identifier: str) -> bool:
    return "::" in identifier
