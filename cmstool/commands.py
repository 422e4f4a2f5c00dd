# *-* coding: utf-8 *-*
"""
The four operations of the command line tool.

Each function checks that its input files exist before touching any
cryptography, prints human readable progress on stdout and raises
:class:`cmstool.errors.Error` subclasses for controlled failures.
"""
import logging
import os

from cmstool import certificate, pkcs12, signer, verifier
from cmstool.errors import CredentialError, Error, MissingFileError, VerificationError

logger = logging.getLogger(__name__)

KEY_FILE = "key.pem"
CERT_FILE = "cert.pem"
SIGNATURE_SUFFIX = ".p7s"


def require_file(what, path, exit_code):
    if not os.path.exists(path):
        raise MissingFileError(what, path, exit_code)


def generate_test_cert(output_dir="."):
    key_path = os.path.join(output_dir, KEY_FILE)
    cert_path = os.path.join(output_dir, CERT_FILE)

    key = certificate.key_create()
    cert = certificate.cert_create_selfsigned(key)
    certificate.key_save(key_path, key)
    certificate.cert_save(cert_path, cert)

    print("Test certificate generated:")
    print(" - private key: %s" % key_path)
    print(" - certificate: %s" % cert_path)
    return key_path, cert_path


def sign_file(input_path, cert_path, key_path, output_path=None, hashalgo="sha256", attrs=True, pss=False):
    require_file("input file", input_path, 1)
    require_file("certificate", cert_path, 2)
    require_file("private key", key_path, 3)

    with open(input_path, "rb") as fh:
        datau = fh.read()
    cert = certificate.cert_load(cert_path)
    key = certificate.key_load(key_path)
    if not certificate.key_matches_cert(key, cert):
        raise CredentialError(
            "private key '%s' does not match certificate '%s'" % (key_path, cert_path)
        )

    datas = signer.sign(datau, key, cert, hashalgo, attrs=attrs, pss=pss)

    if output_path is None:
        output_path = input_path + SIGNATURE_SUFFIX
    with open(output_path, "wb") as fh:
        fh.write(datas)
    print("Signed file created: %s" % output_path)
    return output_path


def content_path_for(signed_path):
    if signed_path.endswith(SIGNATURE_SUFFIX) and len(signed_path) > len(SIGNATURE_SUFFIX):
        return signed_path[: -len(SIGNATURE_SUFFIX)]
    return None


def verify_file(signed_path, cert_path, content_path=None):
    require_file("signed file", signed_path, 1)
    require_file("certificate", cert_path, 2)
    if content_path is None:
        content_path = content_path_for(signed_path)
        if content_path is None:
            raise Error(
                "cannot derive the signed content path from '%s', use --content" % signed_path, 1
            )
    require_file("signed content", content_path, 1)

    cert = certificate.cert_load(cert_path)
    with open(signed_path, "rb") as fh:
        datas = fh.read()
    with open(content_path, "rb") as fh:
        datau = fh.read()
    logger.debug("verifying %s against %s", signed_path, content_path)

    try:
        hashok, signatureok, certok = verifier.verify(datas, datau, cert)
    except VerificationError as ex:
        raise VerificationError("signature is not valid: %s" % ex) from ex
    reasons = []
    if not certok:
        reasons.append("signer is not certificate '%s'" % cert_path)
    if not hashok:
        reasons.append("content digest mismatch")
    if not signatureok:
        reasons.append("signature does not verify")
    if reasons:
        raise VerificationError("signature is not valid: %s" % ", ".join(reasons))
    print("signature is valid.")


def import_pkcs12(p12_path, password, out_prefix):
    require_file(".p12 file", p12_path, 3)

    key_path = "%s-key.pem" % out_prefix
    cert_path = "%s-cert.pem" % out_prefix
    print("Importing %s -> %s, %s" % (p12_path, key_path, cert_path))
    pkcs12.pk12_export(p12_path, password, key_path, cert_path)
    print("Import complete.")
    return key_path, cert_path
