# *-* coding: utf-8 *-*


class Error(ValueError):
    """Base class for failures reported to the user with a dedicated exit code."""

    exit_code = 1

    def __init__(self, message, exit_code=None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class MissingFileError(Error):
    """A path given on the command line does not exist."""

    def __init__(self, what, path, exit_code):
        super().__init__("%s '%s' does not exist." % (what, path), exit_code)
        self.path = path


class VerificationError(Error):
    exit_code = 3


class CredentialError(Error):
    """Certificate or private key is unusable."""

    exit_code = 4


class BundleError(Error):
    """PKCS#12 container cannot be opened."""

    exit_code = 5
