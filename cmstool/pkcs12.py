# *-* coding: utf-8 *-*
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.serialization import pkcs12

from cmstool import certificate
from cmstool.errors import BundleError

logger = logging.getLogger(__name__)


def pk12_load(data: bytes, password: str):
    """
    Decrypt a PKCS#12 container and return its ``(key, cert)`` pair.

    Any additional CA certificates in the bundle are ignored.
    """
    pw = password.encode("utf-8") if password else None
    try:
        key, cert, othercerts = pkcs12.load_key_and_certificates(
            data, pw, default_backend()
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as ex:
        raise BundleError("cannot open PKCS#12 bundle: %s" % ex) from ex
    if key is None:
        raise BundleError("PKCS#12 bundle does not contain a private key")
    if cert is None:
        raise BundleError("PKCS#12 bundle does not contain a certificate")
    if othercerts:
        logger.debug("ignoring %d additional certificate(s)", len(othercerts))
    return key, cert


def pk12_export(fname: str, password: str, key_fname: str, cert_fname: str) -> None:
    with open(fname, "rb") as fp:
        key, cert = pk12_load(fp.read(), password)
    certificate.key_save(key_fname, key)
    certificate.cert_save(cert_fname, cert)
