# *-* coding: utf-8 *-*
import datetime
import logging

from asn1crypto import pem
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization, hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.x509.oid import NameOID

from cmstool.errors import CredentialError

logger = logging.getLogger(__name__)

KEY_SIZE = 2048
VALIDITY_SECONDS = 365 * 24 * 60 * 60
TEST_SERIAL = 1
# CN=Test,O=MyOrg,C=US
TEST_SUBJECT = x509.Name(
    [
        x509.NameAttribute(NameOID.COMMON_NAME, "Test"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "MyOrg"),
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
    ]
)


def key_create(key_size: int = KEY_SIZE) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(
        public_exponent=65537, key_size=key_size, backend=default_backend()
    )


def cert_create_selfsigned(
    key: rsa.RSAPrivateKey,
    subject: x509.Name = TEST_SUBJECT,
    serial: int = TEST_SERIAL,
    not_before: datetime.datetime = None,
) -> x509.Certificate:
    """
    Build a self-signed X.509v3 certificate for ``key``.

    Parameters:
        key: RSA private key; its public half is certified and it signs the certificate.
        subject: Name used as both subject and issuer.
        serial: Certificate serial number.
        not_before: Start of validity, defaults to the current time (UTC, whole seconds).

    Returns:
        The certificate, valid for exactly VALIDITY_SECONDS.
    """
    if not_before is None:
        not_before = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(not_before + datetime.timedelta(seconds=VALIDITY_SECONDS))
        .sign(
            # Sign our certificate with our private key
            key,
            hashes.SHA256(),
            default_backend(),
        )
    )


def key_pem(key: PrivateKeyTypes) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def key_save(fname: str, key: PrivateKeyTypes) -> None:
    with open(fname, "wb") as f:
        f.write(key_pem(key))


def cert_save(fname: str, cert: x509.Certificate) -> None:
    with open(fname, "wb") as f:
        f.write(cert_pem(cert))


def key_load(fname: str) -> PrivateKeyTypes:
    """Load an unencrypted private key stored as PEM or DER."""
    with open(fname, "rb") as f:
        data = f.read()
    try:
        if pem.detect(data):
            return serialization.load_pem_private_key(data, None, default_backend())
        return serialization.load_der_private_key(data, None, default_backend())
    except (ValueError, TypeError, UnsupportedAlgorithm) as ex:
        logger.debug("private key %s: %s", fname, ex)
        raise CredentialError("private key '%s' cannot be loaded: %s" % (fname, ex)) from ex


def cert_load(fname: str) -> x509.Certificate:
    """Load a certificate stored as PEM or DER."""
    with open(fname, "rb") as f:
        data = f.read()
    try:
        if pem.detect(data):
            return x509.load_pem_x509_certificate(data, default_backend())
        return x509.load_der_x509_certificate(data, default_backend())
    except ValueError as ex:
        logger.debug("certificate %s: %s", fname, ex)
        raise CredentialError("certificate '%s' cannot be loaded: %s" % (fname, ex)) from ex


def key_matches_cert(key: PrivateKeyTypes, cert: x509.Certificate) -> bool:
    spki = serialization.PublicFormat.SubjectPublicKeyInfo
    return key.public_key().public_bytes(
        serialization.Encoding.DER, spki
    ) == cert.public_key().public_bytes(serialization.Encoding.DER, spki)
