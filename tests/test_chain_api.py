"""Tests for the Subscan API client.

HTTP is mocked with respx; no network access is needed.
"""

import json

import httpx
import pytest
import respx

from polkadot_monitor.chain.api import (
    NOMINATIONS_PATH,
    REWARD_SLASH_PATH,
    TRANSFERS_PATH,
    ChainApi,
    ChainApiError,
)
from polkadot_monitor.chain.schema import RewardsSlashesPage, TransfersPage
from polkadot_monitor.types import Context, Network

ALICE = "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"
KSM_STASH = "HNZata7iMYWmk5RvZRTiAsSDhV8366zq2YGb3tLH5Upf74F"

POLKADOT_URL = "https://polkadot.api.subscan.io"
KUSAMA_URL = "https://kusama.api.subscan.io"


def envelope(data: object, code: int = 0, message: str = "Success") -> dict:
    return {"code": code, "message": message, "generated_at": 1628000000, "data": data}


@pytest.fixture
def api():
    """ChainApi without request spacing."""
    client = ChainApi(api_key="test-key", request_interval=0)
    yield client
    client.close()


@pytest.fixture
def alice() -> Context:
    return Context(stash=ALICE, network=Network.POLKADOT, description="Alice")


class TestRequestTransfer:
    """Test request_transfer."""

    @respx.mock
    def test_parses_transfers(self, api: ChainApi, alice: Context) -> None:
        route = respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(
                200,
                json=envelope(
                    {
                        "count": 1,
                        "transfers": [
                            {
                                "amount": "12.5",
                                "block_num": 4000000,
                                "block_timestamp": 1600000000,
                                "extrinsic_index": "4000000-2",
                                "fee": "154000000",
                                "hash": "0xabc",
                                "module": "balances",
                                "nonce": 3,
                                "success": True,
                                "from": ALICE,
                                "to": KSM_STASH,
                                "from_account_display": {"address": ALICE},
                                "to_account_display": {"address": KSM_STASH},
                                "asset_symbol": "DOT",
                            }
                        ],
                    }
                ),
            )
        )

        resp = api.request_transfer(alice, 10, 1)

        assert isinstance(resp.data, TransfersPage)
        assert not resp.is_empty()
        transfer = resp.data.transfers[0]
        assert transfer.from_ == ALICE
        assert transfer.to == KSM_STASH
        assert transfer.extrinsic_index == "4000000-2"
        assert transfer.success is True

        request = route.calls.last.request
        assert json.loads(request.content) == {"address": ALICE, "row": 10, "page": 0}
        assert request.headers["X-API-Key"] == "test-key"

    @respx.mock
    def test_page_is_zero_based(self, api: ChainApi, alice: Context) -> None:
        route = respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(200, json=envelope({"count": 0}))
        )

        api.request_transfer(alice, 25, 3)

        assert json.loads(route.calls.last.request.content)["page"] == 2

    @respx.mock
    def test_null_list_is_empty(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(
                200, json=envelope({"count": 0, "transfers": None})
            )
        )

        assert api.request_transfer(alice, 10, 1).is_empty()

    @respx.mock
    def test_kusama_host(self, api: ChainApi) -> None:
        route = respx.post(f"{KUSAMA_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(200, json=envelope({"count": 0}))
        )

        api.request_transfer(Context(KSM_STASH, Network.KUSAMA), 10, 1)

        assert route.called

    @respx.mock
    def test_no_api_key_header(self, alice: Context) -> None:
        route = respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(200, json=envelope({"count": 0}))
        )
        api = ChainApi(request_interval=0)

        api.request_transfer(alice, 10, 1)

        assert "X-API-Key" not in route.calls.last.request.headers


class TestRequestRewardSlash:
    """Test request_reward_slash."""

    @respx.mock
    def test_list_alias(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{REWARD_SLASH_PATH}").mock(
            return_value=httpx.Response(
                200,
                json=envelope(
                    {
                        "count": 2,
                        "list": [
                            {
                                "amount": "10000000000",
                                "block_num": 100,
                                "event_id": "Reward",
                                "extrinsic_hash": "0x01",
                            },
                            {
                                "amount": "5000000000",
                                "block_num": 101,
                                "event_id": "Slash",
                                "extrinsic_hash": "0x02",
                            },
                        ],
                    }
                ),
            )
        )

        resp = api.request_reward_slash(alice, 10, 1)

        assert isinstance(resp.data, RewardsSlashesPage)
        assert [e.event_id for e in resp.data.entries()] == ["Reward", "Slash"]


class TestRequestNominations:
    """Test request_nominations."""

    @respx.mock
    def test_body_has_address_only(self, api: ChainApi, alice: Context) -> None:
        route = respx.post(f"{POLKADOT_URL}{NOMINATIONS_PATH}").mock(
            return_value=httpx.Response(
                200,
                json=envelope(
                    {
                        "count": 1,
                        "list": [
                            {
                                "bonded_nominators": "100",
                                "stash_account_display": {
                                    "address": KSM_STASH,
                                    "display": "Validator",
                                },
                            }
                        ],
                    }
                ),
            )
        )

        resp = api.request_nominations(alice)

        assert json.loads(route.calls.last.request.content) == {"address": ALICE}
        nomination = resp.data.entries()[0]
        assert nomination.stash_account_display.display == "Validator"


class TestErrors:
    """Test error mapping."""

    @respx.mock
    def test_http_error(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(429)
        )

        with pytest.raises(ChainApiError) as exc_info:
            api.request_transfer(alice, 10, 1)
        assert exc_info.value.code == "http_error"
        assert "429" in str(exc_info.value)

    @respx.mock
    def test_timeout(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        with pytest.raises(ChainApiError) as exc_info:
            api.request_transfer(alice, 10, 1)
        assert exc_info.value.code == "timeout"

    @respx.mock
    def test_network_error(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            side_effect=httpx.ConnectError("refused")
        )

        with pytest.raises(ChainApiError) as exc_info:
            api.request_transfer(alice, 10, 1)
        assert exc_info.value.code == "network_error"

    @respx.mock
    def test_invalid_json(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(200, content=b"<html>")
        )

        with pytest.raises(ChainApiError) as exc_info:
            api.request_transfer(alice, 10, 1)
        assert exc_info.value.code == "invalid_response"

    @respx.mock
    def test_api_error_code(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(
                200, json=envelope(None, code=10004, message="Record Not Found")
            )
        )

        with pytest.raises(ChainApiError) as exc_info:
            api.request_transfer(alice, 10, 1)
        assert exc_info.value.code == "api_error"
        assert "Record Not Found" in str(exc_info.value)

    @respx.mock
    def test_unexpected_body(self, api: ChainApi, alice: Context) -> None:
        respx.post(f"{POLKADOT_URL}{TRANSFERS_PATH}").mock(
            return_value=httpx.Response(
                200, json=envelope({"transfers": "not a list"})
            )
        )

        with pytest.raises(ChainApiError) as exc_info:
            api.request_transfer(alice, 10, 1)
        assert exc_info.value.code == "invalid_response"
