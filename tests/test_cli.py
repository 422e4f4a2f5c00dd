#!/usr/bin/env python3
# coding: utf-8
import contextlib
import io
import os
import shutil
import tempfile
import unittest
from unittest import mock

from cryptography import x509

from cmstool import cli

import test_cert


class CLITests(unittest.TestCase):
    def setUp(self):
        self.cwd = os.getcwd()
        self.workdir = tempfile.mkdtemp()
        os.chdir(self.workdir)
        with open('report.txt', 'wb') as fh:
            fh.write(b'quarterly numbers\n')

    def tearDown(self):
        os.chdir(self.cwd)
        shutil.rmtree(self.workdir)

    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = cli.main(list(argv))
        return code, out.getvalue()

    def generate(self):
        code, out = self.run_cli('generate-test-cert')
        assert code == 0, out
        assert os.path.exists('key.pem') and os.path.exists('cert.pem')

    def test_sign_and_verify(self):
        self.generate()
        code, out = self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        assert code == 0, out
        assert 'report.txt.p7s' in out
        assert os.path.exists('report.txt.p7s')

        code, out = self.run_cli('verify', 'report.txt.p7s', 'cert.pem')
        assert code == 0, out
        assert 'signature is valid.' in out

    def test_sign_options(self):
        self.generate()
        code, out = self.run_cli('-v', 'sign', 'report.txt', 'cert.pem', 'key.pem',
            '--hash', 'sha384', '--pss', '--noattr', '-o', 'report.sig')
        assert code == 0, out
        assert not os.path.exists('report.txt.p7s')

        code, out = self.run_cli('verify', 'report.sig', 'cert.pem')
        assert code == 1
        assert out.startswith('ERROR: ')

        code, out = self.run_cli('verify', 'report.sig', 'cert.pem', '--content', 'report.txt')
        assert code == 0, out

    def test_sign_missing_files(self):
        self.generate()
        with mock.patch('cmstool.signer.sign') as sign, \
                mock.patch('cmstool.certificate.cert_load') as cert_load:
            code, out = self.run_cli('sign', 'missing.txt', 'cert.pem', 'key.pem')
            assert code == 1
            assert out == "ERROR: input file 'missing.txt' does not exist.\n"

            code, out = self.run_cli('sign', 'report.txt', 'missing.pem', 'key.pem')
            assert code == 2
            assert "certificate 'missing.pem'" in out

            code, out = self.run_cli('sign', 'report.txt', 'cert.pem', 'missing.pem')
            assert code == 3
            assert out == "ERROR: private key 'missing.pem' does not exist.\n"
            assert not sign.called
            assert not cert_load.called
        assert not os.path.exists('report.txt.p7s')

    def test_sign_bad_credentials(self):
        self.generate()
        other = test_cert.CA(self.workdir, 'other')
        code, out = self.run_cli('sign', 'report.txt', 'cert.pem', other.key_path)
        assert code == 4
        assert 'does not match' in out

        code, out = self.run_cli('sign', 'report.txt', 'report.txt', 'key.pem')
        assert code == 4
        assert out.startswith('ERROR: certificate')
        assert not os.path.exists('report.txt.p7s')

    def test_verify_missing_files(self):
        self.generate()
        self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        with mock.patch('cmstool.verifier.verify') as verify:
            code, out = self.run_cli('verify', 'missing.p7s', 'cert.pem')
            assert code == 1
            code, out = self.run_cli('verify', 'report.txt.p7s', 'missing.pem')
            assert code == 2
            os.unlink('report.txt')
            code, out = self.run_cli('verify', 'report.txt.p7s', 'cert.pem')
            assert code == 1
            assert "signed content 'report.txt'" in out
            assert not verify.called

    def test_verify_tampered(self):
        self.generate()
        self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        with open('report.txt.p7s', 'rb') as fh:
            datas = bytearray(fh.read())
        datas[-1] ^= 0xff
        with open('report.txt.p7s', 'wb') as fh:
            fh.write(datas)
        code, out = self.run_cli('verify', 'report.txt.p7s', 'cert.pem')
        assert code == 3
        assert out.startswith('ERROR: signature is not valid')

    def test_verify_tampered_structure(self):
        self.generate()
        self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        with open('report.txt.p7s', 'rb') as fh:
            datas = fh.read()
        with open('cert.pem', 'rb') as fh:
            cert = x509.load_pem_x509_certificate(fh.read())
        offsets = test_cert.signature_offsets(datas, cert)
        for name, offset in sorted(offsets.items()):
            for mask in (0x01, 0xff):
                tampered = bytearray(datas)
                tampered[offset] ^= mask
                with open('report.txt.p7s', 'wb') as fh:
                    fh.write(tampered)
                code, out = self.run_cli('verify', 'report.txt.p7s', 'cert.pem')
                assert code == 3, (name, mask, out)
                assert out.startswith('ERROR: signature is not valid'), (name, mask, out)

    def test_verify_truncated(self):
        self.generate()
        self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        with open('report.txt.p7s', 'rb') as fh:
            datas = fh.read()
        with open('report.txt.p7s', 'wb') as fh:
            fh.write(datas[:len(datas) // 2])
        code, out = self.run_cli('verify', 'report.txt.p7s', 'cert.pem')
        assert code == 3

    def test_verify_modified_content(self):
        self.generate()
        self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        with open('report.txt', 'ab') as fh:
            fh.write(b'one more line\n')
        code, out = self.run_cli('verify', 'report.txt.p7s', 'cert.pem')
        assert code == 3
        assert 'digest mismatch' in out

    def test_verify_other_certificate(self):
        self.generate()
        self.run_cli('sign', 'report.txt', 'cert.pem', 'key.pem')
        other = test_cert.CA(self.workdir, 'other')
        code, out = self.run_cli('verify', 'report.txt.p7s', other.cert_path)
        assert code == 3
        assert 'signature is not valid' in out

    def test_import_p12(self):
        ca = test_cert.CA(self.workdir, 'user1')
        ca.pk12_save('1234')
        code, out = self.run_cli('import-p12', ca.p12_path, '1234', 'imported')
        assert code == 0, out
        assert out.splitlines()[-1] == 'Import complete.'
        assert os.path.exists('imported-key.pem')
        assert os.path.exists('imported-cert.pem')

        code, out = self.run_cli('sign', 'report.txt', 'imported-cert.pem', 'imported-key.pem')
        assert code == 0, out
        code, out = self.run_cli('verify', 'report.txt.p7s', ca.cert_path)
        assert code == 0, out

    def test_import_p12_errors(self):
        code, out = self.run_cli('import-p12', 'missing.p12', '1234', 'imported')
        assert code == 3
        assert out == "ERROR: .p12 file 'missing.p12' does not exist.\n"

        ca = test_cert.CA(self.workdir, 'user1')
        ca.pk12_save('1234')
        code, out = self.run_cli('import-p12', ca.p12_path, 'wrong', 'imported')
        assert code == 5
        assert 'ERROR: cannot open PKCS#12 bundle' in out
        assert not os.path.exists('imported-key.pem')

    def test_usage(self):
        err = io.StringIO()
        with contextlib.redirect_stderr(err), self.assertRaises(SystemExit) as cm:
            self.run_cli('sign', 'report.txt')
        assert cm.exception.code == 2


if __name__ == '__main__':
    unittest.main()
