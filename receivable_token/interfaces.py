"""Acknowledgement values returned by token receiver hooks."""
from __future__ import annotations

from .chain import selector

ERC721_RECEIVED = selector("onERC721Received(address,address,uint256,bytes)")
ERC1155_RECEIVED = selector("onERC1155Received(address,address,uint256,uint256,bytes)")
ERC1155_BATCH_RECEIVED = selector("onERC1155BatchReceived(address,address,uint256[],uint256[],bytes)")

__all__ = ["ERC1155_BATCH_RECEIVED", "ERC1155_RECEIVED", "ERC721_RECEIVED"]
