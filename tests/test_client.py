"""Tests for the transport-neutral client surface."""

import pytest

from synse_client.api import (
    ConfigurationError,
    SynseClient,
    create_client,
)
from synse_client.api.client import write_payload
from synse_client.models import WriteData


class TestWritePayload:
    """Tests for normalizing write instructions."""

    def test_records_and_mappings_mix(self):
        payload = write_payload(
            [
                WriteData(action="color", data="f38ac2"),
                {"action": "state", "data": "on"},
            ]
        )

        assert payload == [
            {"transaction": "", "action": "color", "data": "f38ac2"},
            {"transaction": "", "action": "state", "data": "on"},
        ]

    def test_single_instruction(self):
        assert write_payload({"action": "state", "data": "off"}) == [
            {"transaction": "", "action": "state", "data": "off"}
        ]

    def test_unknown_keys_are_kept(self):
        assert write_payload([{"action": "state", "priority": 2}])[0]["priority"] == 2


class TestClientSurface:
    """Both transports expose the same operations."""

    @pytest.mark.parametrize("transport", ["http", "websocket"])
    def test_clients_satisfy_protocol(self, transport):
        client = create_client({"address": "localhost:5000"}, transport)

        assert isinstance(client, SynseClient)

    def test_missing_address_rejected(self):
        with pytest.raises(ConfigurationError):
            create_client({"timeout": 1.0})
