# *-* coding: utf-8 *-*
import argparse
import logging

from cmstool import __version__, commands, signer
from cmstool.errors import Error


def create_args():
    """Creates CLI arguments for the cmstool command."""

    parser = argparse.ArgumentParser(
        prog='cmstool',
        description='Detached CMS (PKCS#7) signing, verification and PKCS#12 import')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debugging details to stderr')
    parser.add_argument('--version', action='version', version='%(prog)s ' + __version__)
    sub = parser.add_subparsers(dest='command', metavar='command', required=True)

    p = sub.add_parser('generate-test-cert', help='Create key.pem and a self-signed cert.pem')
    p.add_argument('--output-dir', default='.', help='Directory to write key.pem and cert.pem into (default: current)')

    p = sub.add_parser('sign', help='Create a detached signature <input>.p7s')
    p.add_argument('input', help='File to sign')
    p.add_argument('cert', help='Signer certificate (PEM or DER)')
    p.add_argument('key', help='Signer private key (PEM or DER, unencrypted)')
    p.add_argument('--hash', dest='hashalgo', default='sha256', choices=signer.HASHALGOS,
        help='Digest algorithm (default: sha256)')
    p.add_argument('--noattr', action='store_true', help='Sign the content without signed attributes')
    p.add_argument('--pss', action='store_true', help='Use RSASSA-PSS padding')
    p.add_argument('-o', '--output', help='Signature file (default: <input>.p7s)')

    p = sub.add_parser('verify', help='Verify a detached signature against a certificate')
    p.add_argument('signed', help='Signature file (.p7s)')
    p.add_argument('cert', help='The only certificate accepted as signer')
    p.add_argument('--content', help='Signed content (default: signature file name without .p7s)')

    p = sub.add_parser('import-p12', help='Extract <prefix>-key.pem and <prefix>-cert.pem from a PKCS#12 file')
    p.add_argument('p12', help='PKCS#12 file')
    p.add_argument('password', help='PKCS#12 password')
    p.add_argument('prefix', help='Output file prefix')

    return parser


def run(args):
    if args.command == 'generate-test-cert':
        commands.generate_test_cert(args.output_dir)
    elif args.command == 'sign':
        commands.sign_file(args.input, args.cert, args.key, args.output,
            hashalgo=args.hashalgo, attrs=not args.noattr, pss=args.pss)
    elif args.command == 'verify':
        commands.verify_file(args.signed, args.cert, args.content)
    elif args.command == 'import-p12':
        commands.import_pkcs12(args.p12, args.password, args.prefix)


def main(argv=None):
    args = create_args().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    try:
        run(args)
    except Error as ex:
        print('ERROR: %s' % ex)
        return ex.exit_code
    return 0
