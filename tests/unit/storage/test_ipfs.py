"""Tests for Pinata IPFS storage."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from evermark.content.base import ContentMetadata, ContentType
from evermark.errors import ExternalServiceError
from evermark.storage.ipfs import PinataClient, build_nft_metadata, is_valid_ipfs_hash

CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


def _meta() -> ContentMetadata:
    return ContentMetadata(
        title="Cast by Alice: gm",
        content_type=ContentType.CAST,
        source_url="https://warpcast.com/alice/0xabc12345",
        tags=["farcaster", "cast"],
        extended_metadata={"imageUrl": "https://img/p.png"},
    )


def test_build_nft_metadata_shape() -> None:
    doc = build_nft_metadata(_meta())

    assert doc["name"] == "Cast by Alice: gm"
    assert doc["description"] == ""
    assert doc["image"] == "https://img/p.png"
    assert {"trait_type": "Author", "value": "Unknown"} in doc["attributes"]
    tags = [a["value"] for a in doc["attributes"] if a["trait_type"] == "Tag"]
    assert tags == ["farcaster", "cast"]
    assert doc["evermark"]["version"] == "1.0"
    assert doc["evermark"]["contentType"] == "Cast"


def test_is_valid_ipfs_hash() -> None:
    assert is_valid_ipfs_hash(CID_V0)
    assert is_valid_ipfs_hash("bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi")
    assert not is_valid_ipfs_hash("not-a-hash")
    assert not is_valid_ipfs_hash("")


def test_upload_without_jwt_fails() -> None:
    client = PinataClient("")
    assert not client.configured
    with pytest.raises(ExternalServiceError, match="IPFS configuration not available"):
        client.upload_metadata(_meta())


def test_upload_posts_to_pinata() -> None:
    client = PinataClient("jwt-token", api_base="https://pinata.test/")
    with patch("evermark.storage.ipfs.request_json", return_value={"IpfsHash": CID_V0}) as mock_req:
        result = client.upload_metadata(_meta())

    assert result == CID_V0
    method, url = mock_req.call_args.args
    kwargs = mock_req.call_args.kwargs
    assert (method, url) == ("POST", "https://pinata.test/pinning/pinJSONToIPFS")
    assert kwargs["headers"] == {"Authorization": "Bearer jwt-token"}
    assert kwargs["payload"]["pinataMetadata"]["name"] == "evermark-Cast by Alice: gm"
    assert kwargs["payload"]["pinataContent"]["name"] == "Cast by Alice: gm"


def test_upload_missing_hash_raises() -> None:
    client = PinataClient("jwt-token")
    with patch("evermark.storage.ipfs.request_json", return_value={}):
        with pytest.raises(ExternalServiceError, match="IpfsHash"):
            client.upload_metadata(_meta())


def test_gateway_url() -> None:
    client = PinataClient("jwt", gateway="https://gw.example/ipfs/")
    assert client.gateway_url(CID_V0) == f"https://gw.example/ipfs/{CID_V0}"
