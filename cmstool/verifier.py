# *-* coding: utf-8 *-*
import hashlib
import logging

from asn1crypto import core, cms
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from cmstool import signer
from cmstool.errors import VerificationError

logger = logging.getLogger(__name__)

NULL = b"\x05\x00"


def params_absent_or_null(algorithm):
    params = algorithm["parameters"]
    return isinstance(params, core.Void) or params.dump() == NULL


class VerifyData(object):
    def __init__(self, cert):
        self.cert = cert
        self.certasn = signer.cert2asn(cert)

    def load(self, datas):
        try:
            contentinfo = cms.ContentInfo.load(datas, strict=True)
            # parse the whole tree now so that corruption surfaces here
            contentinfo.native
        except (ValueError, TypeError, KeyError) as ex:
            raise VerificationError("malformed CMS structure: %s" % ex) from ex
        if contentinfo["content_type"].native != "signed_data":
            raise VerificationError("not a CMS signed-data structure")
        signed_data = contentinfo["content"]
        if signed_data["version"].native not in ("v1", "v3", "v4", "v5"):
            raise VerificationError("unexpected signed-data version %r" % signed_data["version"].native)
        if signed_data["encap_content_info"]["content_type"].native != "data":
            raise VerificationError("signed content is not of type data")
        if signed_data["encap_content_info"]["content"].native is not None:
            raise VerificationError("signature is not detached")
        if not isinstance(signed_data["crls"], core.Void):
            raise VerificationError("revocation data is not supported")
        for da in signed_data["digest_algorithms"]:
            if not params_absent_or_null(da):
                raise VerificationError("unexpected digest algorithm parameters")
        if len(signed_data["signer_infos"]) != 1:
            raise VerificationError(
                "expected exactly one signer, found %d" % len(signed_data["signer_infos"])
            )
        return signed_data

    def sid_matches(self, sid):
        if sid.name == "issuer_and_serial_number":
            return (
                sid.chosen["issuer"].dump() == self.certasn.issuer.dump()
                and sid.chosen["serial_number"].native == self.certasn.serial_number
            )
        if sid.name == "subject_key_identifier":
            return sid.chosen.native == self.certasn.key_identifier
        return False

    def verify_cert(self, signed_data, sid):
        """The signer must be the trusted certificate, byte for byte."""
        if not self.sid_matches(sid):
            logger.debug("signer identifier %r does not name the trusted certificate", sid.native)
            return False
        certificates = signed_data["certificates"]
        if isinstance(certificates, core.Void):
            return True
        # only the signer certificate may be embedded
        for choice in certificates:
            if choice.name != "certificate" or choice.chosen.dump() != self.certasn.dump():
                logger.debug("embedded certificate differs from the trusted one")
                return False
        return True

    def signed_digest(self, attrs):
        values = {}
        for attr in attrs:
            values[attr["type"].native] = attr["values"].native
        if values.get("content_type") != ["data"]:
            raise VerificationError("signed attributes lack content-type data")
        md = values.get("message_digest")
        if not md or len(md) != 1:
            raise VerificationError("signed attributes lack a message digest")
        return md[0]

    def padding(self, sigalgo, algo):
        try:
            sigalgoname = sigalgo.signature_algo
        except (ValueError, KeyError) as ex:
            raise VerificationError("unknown signature algorithm: %s" % ex) from ex
        if sigalgoname == "rsassa_pss":
            parameters = sigalgo["parameters"]
            if isinstance(parameters, core.Void):
                raise VerificationError("missing PSS parameters")
            salgo = parameters["hash_algorithm"]["algorithm"].native
            if salgo not in signer.HASHALGOS:
                raise VerificationError("unsupported PSS digest algorithm %s" % salgo)
            mgf = parameters["mask_gen_algorithm"]
            if (
                mgf["algorithm"].native != "mgf1"
                or isinstance(mgf["parameters"], core.Void)
                or mgf["parameters"]["algorithm"].native != salgo
                or parameters["trailer_field"].native != "trailer_field_bc"
            ):
                raise VerificationError("unsupported PSS parameters")
            md = getattr(hashes, salgo.upper())
            return padding.PSS(padding.MGF1(md()), parameters["salt_length"].native), md
        if sigalgoname == "rsassa_pkcs1v15":
            if not params_absent_or_null(sigalgo):
                raise VerificationError("unexpected signature algorithm parameters")
            return padding.PKCS1v15(), getattr(hashes, algo.upper())
        raise VerificationError("unknown signature algorithm %s" % sigalgoname)

    def verify(self, datas, datau):
        signed_data = self.load(datas)
        signer_info = signed_data["signer_infos"][0]
        if signer_info["version"].native not in ("v1", "v3"):
            raise VerificationError("unexpected signer-info version %r" % signer_info["version"].native)
        if not isinstance(signer_info["unsigned_attrs"], core.Void):
            raise VerificationError("unsigned attributes are not supported")

        algo = signer_info["digest_algorithm"]["algorithm"].native
        if algo not in signer.HASHALGOS:
            raise VerificationError("unsupported digest algorithm %s" % algo)
        if not params_absent_or_null(signer_info["digest_algorithm"]):
            raise VerificationError("unexpected digest algorithm parameters")
        if algo not in [da["algorithm"].native for da in signed_data["digest_algorithms"]]:
            raise VerificationError("digest algorithm %s is not declared" % algo)

        signature = signer_info["signature"].native
        attrs = signer_info["signed_attrs"]
        mdData = getattr(hashlib, algo)(datau).digest()
        if attrs is not None and not isinstance(attrs, core.Void):
            mdSigned = self.signed_digest(attrs)
            signedData = attrs.dump()
            signedData = b"\x31" + signedData[1:]
        else:
            mdSigned = mdData
            signedData = datau
        hashok = mdData == mdSigned

        certok = self.verify_cert(signed_data, signer_info["sid"])

        public_key = self.cert.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise VerificationError("only RSA signers are supported")
        pad, md = self.padding(signer_info["signature_algorithm"], algo)
        try:
            public_key.verify(signature, signedData, pad, md())
            signatureok = True
        except InvalidSignature:
            signatureok = False

        logger.debug("hashok=%s signatureok=%s certok=%s", hashok, signatureok, certok)
        return (hashok, signatureok, certok)


def verify(datas: bytes, datau: bytes, cert) -> tuple[bool, bool, bool]:
    """
    Verify a detached CMS signature against its content and one trusted certificate.

    :param datas: DER encoded CMS ContentInfo.
    :param datau: The signed content.
    :param cert: The only certificate accepted as signer (cryptography x509.Certificate).
    :return:
        hashok, signatureok, certok

        hashok : bool
            True if the content digest matches the signed digest.
        signatureok : bool
            True if the signature verifies under the certificate's public key.
        certok : bool
            True if the signer is exactly the given certificate.
    :raises VerificationError: the structure is malformed or unsupported.
    """
    cls = VerifyData(cert)
    return cls.verify(datas, datau)
