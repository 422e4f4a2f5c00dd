# *-* coding: utf-8 *-*
import hashlib
import logging
from datetime import datetime

from asn1crypto import cms, algos, core, tsp, x509, util
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from cmstool.errors import CredentialError

logger = logging.getLogger(__name__)

HASHALGOS = ("sha1", "sha256", "sha384", "sha512")


def cert2asn(cert):
    if isinstance(cert, x509.Certificate):
        return cert
    return x509.Certificate.load(cert.public_bytes(serialization.Encoding.DER))


def signing_certificate_v2(cert):
    return cms.CMSAttribute(
        {
            "type": cms.CMSAttributeType("signing_certificate_v2"),
            "values": [
                tsp.SigningCertificateV2(
                    {
                        "certs": [
                            tsp.ESSCertIDv2(
                                {
                                    "hash_algorithm": algos.DigestAlgorithm(
                                        {"algorithm": "sha256"}
                                    ),
                                    "cert_hash": hashlib.sha256(cert.dump()).digest(),
                                    "issuer_serial": tsp.IssuerSerial(
                                        {
                                            "issuer": (
                                                x509.GeneralName(
                                                    {"directory_name": cert.issuer}
                                                ),
                                            ),
                                            "serial_number": cert.serial_number,
                                        }
                                    ),
                                }
                            ),
                        ]
                    }
                ),
            ],
        }
    )


def sign(datau, key, cert, hashalgo="sha256", attrs=True, pss=False):
    """
    Build a detached CMS SignedData over ``datau``.

    The content itself is not embedded; the signer certificate is the only
    certificate carried in the structure.

    Parameters:
        datau: Data to sign (bytes).
        key: RSA private key (cryptography).
        cert: Signer certificate (cryptography or asn1crypto).
        hashalgo: One of HASHALGOS.
        attrs: Include signed attributes (content type, message digest,
            signing time, signing certificate v2).
        pss: Use RSASSA-PSS instead of PKCS#1 v1.5.

    Returns:
        DER encoded ContentInfo as bytes.
    """
    if hashalgo not in HASHALGOS:
        raise ValueError("Unsupported hash algorithm: %s" % hashalgo)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise CredentialError("only RSA private keys are supported")

    signed_value = getattr(hashlib, hashalgo)(datau).digest()
    signed_time = datetime.now(tz=util.timezone.utc)
    logger.debug("signing %d bytes, %s digest %s", len(datau), hashalgo, signed_value.hex())

    cert = cert2asn(cert)
    certificates = [cert]

    md = getattr(hashes, hashalgo.upper())
    signer = {
        "version": "v1",
        "sid": cms.SignerIdentifier(
            {
                "issuer_and_serial_number": cms.IssuerAndSerialNumber(
                    {
                        "issuer": cert.issuer,
                        "serial_number": cert.serial_number,
                    }
                ),
            }
        ),
        "digest_algorithm": algos.DigestAlgorithm({"algorithm": hashalgo}),
        "signature": signed_value,
    }
    if not pss:
        signer["signature_algorithm"] = algos.SignedDigestAlgorithm(
            {"algorithm": "rsassa_pkcs1v15"}
        )
    else:
        salt_length = padding.calculate_max_pss_salt_length(key, md())
        signer["signature_algorithm"] = algos.SignedDigestAlgorithm(
            {
                "algorithm": "rsassa_pss",
                "parameters": algos.RSASSAPSSParams(
                    {
                        "hash_algorithm": algos.DigestAlgorithm({"algorithm": hashalgo}),
                        "mask_gen_algorithm": algos.MaskGenAlgorithm(
                            {
                                "algorithm": algos.MaskGenAlgorithmId("mgf1"),
                                "parameters": {
                                    "algorithm": algos.DigestAlgorithmId(hashalgo),
                                },
                            }
                        ),
                        "salt_length": algos.Integer(salt_length),
                        "trailer_field": algos.TrailerField(1),
                    }
                ),
            }
        )

    if attrs:
        signer["signed_attrs"] = [
            cms.CMSAttribute(
                {
                    "type": cms.CMSAttributeType("content_type"),
                    "values": ("data",),
                }
            ),
            cms.CMSAttribute(
                {
                    "type": cms.CMSAttributeType("message_digest"),
                    "values": (signed_value,),
                }
            ),
            cms.CMSAttribute(
                {
                    "type": cms.CMSAttributeType("signing_time"),
                    "values": (cms.Time({"utc_time": core.UTCTime(signed_time)}),),
                }
            ),
            signing_certificate_v2(cert),
        ]

    config = {
        "version": "v1",
        "digest_algorithms": cms.DigestAlgorithms(
            (algos.DigestAlgorithm({"algorithm": hashalgo}),)
        ),
        # detached: content type only, no eContent
        "encap_content_info": {
            "content_type": "data",
        },
        "certificates": certificates,
        "signer_infos": [
            signer,
        ],
    }
    datas = cms.ContentInfo(
        {
            "content_type": cms.ContentType("signed_data"),
            "content": cms.SignedData(config),
        }
    )
    if attrs:
        tosign = datas["content"]["signer_infos"][0]["signed_attrs"].dump()
        tosign = b"\x31" + tosign[1:]
    else:
        tosign = datau
    if pss:
        signed_value_signature = key.sign(
            tosign,
            padding.PSS(mgf=padding.MGF1(md()), salt_length=salt_length),
            md(),
        )
    else:
        signed_value_signature = key.sign(tosign, padding.PKCS1v15(), md())

    datas["content"]["signer_infos"][0]["signature"] = signed_value_signature
    return datas.dump()
