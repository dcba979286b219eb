"""Tests for the sharing protocol: share, share_new and receive."""

import pytest

from open_e2ee.core.exceptions import (
    DecryptionError,
    EncryptionError,
    EnvelopeFormatError,
    IdentityStateError,
    KeyParseError,
    SignatureVerificationError,
)
from open_e2ee.envelope import read_envelope
from open_e2ee.models import ShareItemOut, ShareNewItemOut


# =============================================================================
# share
# =============================================================================


class TestShare:
    """Tests for re-wrapping an existing envelope."""

    async def test_receiver_can_open(self, alice, bob):
        item = await alice.encrypt("for bob")
        shared = await alice.share(bob.public_key, item.encrypted_message)

        assert isinstance(shared, ShareItemOut)
        assert shared.sender_public_key == alice.public_key
        message = await bob.receive(shared.sender_public_key, shared.receiver_encrypted_message)
        assert message.data == "for bob"
        assert message.key == item.key

    async def test_sender_can_still_open(self, alice, bob):
        item = await alice.encrypt("for bob")
        shared = await alice.share(bob.public_key, item.encrypted_message)
        assert (await alice.decrypt(shared.receiver_encrypted_message)).data == "for bob"

    async def test_data_blob_is_unchanged(self, alice, bob):
        item = await alice.encrypt("for bob")
        shared = await alice.share(bob.public_key, item.encrypted_message)

        own_key, own_data = read_envelope(item.encrypted_message)
        shared_key, shared_data = read_envelope(shared.receiver_encrypted_message)
        assert shared_data == own_data
        assert shared_key != own_key

    async def test_third_party_cannot_open(self, alice, bob, carol):
        item = await alice.encrypt("for bob")
        shared = await alice.share(bob.public_key, item.encrypted_message)

        with pytest.raises(DecryptionError):
            await carol.receive(alice.public_key, shared.receiver_encrypted_message)

    async def test_cannot_reshare_envelope_from_other_sender(self, alice, bob, carol):
        shared = await alice.share_new(bob.public_key, "for bob")

        with pytest.raises(SignatureVerificationError) as exc_info:
            await bob.share(carol.public_key, shared.receiver_encrypted_message)
        assert exc_info.value.operation == "share.decrypt_key"
        assert exc_info.value.details["step"] == "provider.decrypt_asymmetric"

    async def test_malformed_envelope(self, alice, bob):
        with pytest.raises(EnvelopeFormatError) as exc_info:
            await alice.share(bob.public_key, "OE2EE1:broken")
        assert exc_info.value.operation == "share.read_envelope"

    async def test_malformed_receiver_key(self, alice):
        item = await alice.encrypt("data")
        with pytest.raises(KeyParseError) as exc_info:
            await alice.share("not a key", item.encrypted_message)
        assert exc_info.value.operation == "share.read_receiver_key"

    async def test_rewrap_failure_is_tagged(self, alice, bob, monkeypatch):
        item = await alice.encrypt("data")

        async def fail(*args, **kwargs):
            raise EncryptionError("wrap failed", operation="provider.encrypt_asymmetric")

        monkeypatch.setattr(alice.identity.provider, "encrypt_asymmetric", fail)
        with pytest.raises(EncryptionError) as exc_info:
            await alice.share(bob.public_key, item.encrypted_message)
        assert exc_info.value.operation == "share.rewrap_key"
        assert exc_info.value.details["step"] == "provider.encrypt_asymmetric"

    async def test_requires_ready_identity(self, make_client, bob):
        with pytest.raises(IdentityStateError) as exc_info:
            await make_client("alice").share(bob.public_key, "OE2EE1:0:,0:,")
        assert exc_info.value.operation == "share"


# =============================================================================
# share_new
# =============================================================================


class TestShareNew:
    """Tests for encrypting and sharing in one step."""

    async def test_both_sides_can_open(self, alice, bob):
        shared = await alice.share_new(bob.public_key, "new data")

        assert isinstance(shared, ShareNewItemOut)
        assert shared.sender_public_key == alice.public_key
        assert (await alice.decrypt(shared.sender_encrypted_message)).data == "new data"
        assert (await bob.receive(alice.public_key, shared.receiver_encrypted_message)).data == "new data"

    async def test_envelopes_share_data_blob(self, alice, bob):
        shared = await alice.share_new(bob.public_key, "new data")

        _, sender_data = read_envelope(shared.sender_encrypted_message)
        _, receiver_data = read_envelope(shared.receiver_encrypted_message)
        assert sender_data == receiver_data

    async def test_receiver_envelope_is_for_receiver_only(self, alice, bob):
        shared = await alice.share_new(bob.public_key, "new data")

        with pytest.raises(DecryptionError) as exc_info:
            await alice.decrypt(shared.receiver_encrypted_message)
        assert exc_info.value.operation == "decrypt.decrypt_key"

    async def test_receiver_cannot_open_sender_envelope(self, alice, bob):
        shared = await alice.share_new(bob.public_key, "new data")
        with pytest.raises(DecryptionError):
            await bob.receive(alice.public_key, shared.sender_encrypted_message)

    async def test_malformed_receiver_key(self, alice):
        with pytest.raises(KeyParseError) as exc_info:
            await alice.share_new("not a key", "data")
        assert exc_info.value.operation == "share_new.read_receiver_key"

    async def test_bad_receiver_key_skips_encryption(self, alice, monkeypatch):
        calls = []

        async def tracking_encrypt(data):
            calls.append(data)
            return await original(data)

        original = alice.orchestrator.encrypt
        monkeypatch.setattr(alice.orchestrator, "encrypt", tracking_encrypt)

        with pytest.raises(KeyParseError):
            await alice.share_new("not a key", "data")
        assert calls == []

    async def test_failing_step_is_recorded(self, alice, bob):
        with pytest.raises(EncryptionError) as exc_info:
            await alice.share_new(bob.public_key, "\ud800")
        assert exc_info.value.operation == "share_new.encrypt"
        assert exc_info.value.details["step"] == "encrypt.encrypt_data"


# =============================================================================
# receive
# =============================================================================


class TestReceive:
    """Tests for opening envelopes shared by another identity."""

    async def test_rejects_other_signer(self, alice, bob, carol):
        shared = await carol.share_new(bob.public_key, "from carol")

        with pytest.raises(SignatureVerificationError) as exc_info:
            await bob.receive(alice.public_key, shared.receiver_encrypted_message)
        assert exc_info.value.operation == "receive.decrypt_key"

    async def test_rejects_own_signature(self, alice, bob):
        item = await bob.encrypt("mine")

        with pytest.raises(SignatureVerificationError) as exc_info:
            await bob.receive(alice.public_key, item.encrypted_message)
        assert exc_info.value.operation == "receive.decrypt_key"

    async def test_own_key_as_explicit_sender(self, bob):
        item = await bob.encrypt("mine")
        assert (await bob.receive(bob.public_key, item.encrypted_message)).data == "mine"

    async def test_malformed_sender_key(self, alice, bob):
        shared = await alice.share_new(bob.public_key, "data")
        with pytest.raises(KeyParseError) as exc_info:
            await bob.receive("garbage", shared.receiver_encrypted_message)
        assert exc_info.value.operation == "receive.read_verification_keys"

    async def test_tampered_data_blob(self, alice, bob, tamper):
        from open_e2ee.envelope import write_envelope

        shared = await alice.share_new(bob.public_key, "data")
        encrypted_key, encrypted_data = read_envelope(shared.receiver_encrypted_message)

        with pytest.raises(DecryptionError) as exc_info:
            await bob.receive(alice.public_key, write_envelope(encrypted_key, tamper(encrypted_data)))
        assert exc_info.value.operation == "receive.decrypt_data"

    async def test_chain_through_receive_and_share_new(self, alice, bob, carol):
        first = await alice.share_new(bob.public_key, "pass it on")
        received = await bob.receive(alice.public_key, first.receiver_encrypted_message)

        second = await bob.share_new(carol.public_key, received.data)
        assert (await carol.receive(bob.public_key, second.receiver_encrypted_message)).data == "pass it on"
