"""Tests for digital certificate storage with encrypted passwords."""

import base64
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from softagon.db.models import DigitalCertificate
from softagon.repositories import DigitalCertificateRepository, RecordNotFoundError
from softagon.services.encryption import DecryptionError, FieldEncryptor
from tests.factories import make_session


class TestDigitalCertificateRepository:
    """Passwords are encrypted on write and decrypted only on request."""

    @pytest.mark.asyncio
    async def test_create_stores_ciphertext(self, encryptor):
        session = make_session()
        repo = DigitalCertificateRepository(session, encryptor)
        expires_at = datetime(2027, 1, 1, tzinfo=UTC)

        certificate = await repo.create(
            user_id=uuid4(),
            certificate_path="/certs/ana.p12",
            password="p12-secret",
            expires_at=expires_at,
        )

        assert isinstance(certificate, DigitalCertificate)
        assert certificate.password != "p12-secret"
        assert FieldEncryptor.is_encrypted(certificate.password)
        assert encryptor.decrypt(certificate.password) == "p12-secret"
        assert certificate.expires_at == expires_at

    @pytest.mark.asyncio
    async def test_reveal_password(self, encryptor):
        certificate = DigitalCertificate(
            certificate_id=uuid4(),
            user_id=uuid4(),
            certificate_path="/certs/ana.p12",
            password=encryptor.encrypt("p12-secret"),
        )
        session = make_session(get=certificate)

        password = await DigitalCertificateRepository(session, encryptor).reveal_password(
            certificate.certificate_id
        )

        assert password == "p12-secret"

    @pytest.mark.asyncio
    async def test_reveal_password_missing_certificate(self, encryptor):
        with pytest.raises(RecordNotFoundError):
            await DigitalCertificateRepository(make_session(), encryptor).reveal_password(uuid4())

    @pytest.mark.asyncio
    async def test_reveal_password_with_wrong_key(self, encryptor):
        certificate = DigitalCertificate(
            certificate_id=uuid4(),
            user_id=uuid4(),
            certificate_path="/certs/ana.p12",
            password=FieldEncryptor(bytes(32)).encrypt("p12-secret"),
        )
        session = make_session(get=certificate)

        with pytest.raises(DecryptionError):
            await DigitalCertificateRepository(session, encryptor).reveal_password(
                certificate.certificate_id
            )

    @pytest.mark.asyncio
    async def test_update_reencrypts_password(self, encryptor):
        certificate = DigitalCertificate(
            certificate_id=uuid4(),
            user_id=uuid4(),
            certificate_path="/certs/ana.p12",
            password=encryptor.encrypt("old"),
        )
        session = make_session(get=certificate)

        await DigitalCertificateRepository(session, encryptor).update(
            certificate.certificate_id, password="new"
        )

        assert FieldEncryptor.is_encrypted(certificate.password)
        assert encryptor.decrypt(certificate.password) == "new"

    @pytest.mark.asyncio
    async def test_update_without_password_leaves_it(self, encryptor):
        stored = encryptor.encrypt("keep")
        certificate = DigitalCertificate(
            certificate_id=uuid4(),
            user_id=uuid4(),
            certificate_path="/certs/ana.p12",
            password=stored,
        )
        session = make_session(get=certificate)

        await DigitalCertificateRepository(session, encryptor).update(
            certificate.certificate_id, certificate_path="/certs/renewed.p12"
        )

        assert certificate.password == stored
        assert certificate.certificate_path == "/certs/renewed.p12"

    def test_encryptor_built_from_settings(self, monkeypatch, field_key):
        monkeypatch.setenv(
            "SOFTAGON_CRYPTO__FIELD_ENCRYPTION_KEY", base64.b64encode(field_key).decode("ascii")
        )
        repo = DigitalCertificateRepository(make_session())

        stored = repo.encryptor.encrypt("p12-secret")

        assert FieldEncryptor(field_key).decrypt(stored) == "p12-secret"
