from settler.core.auth.credentials import CredentialVerifier, PlaintextVerifier, ScryptVerifier
from settler.core.auth.engine import AuthEngine
from settler.core.auth.results import LoginFailure, LoginResult
from settler.core.auth.session import SessionPolicy, is_expired

__all__ = [
    "AuthEngine",
    "CredentialVerifier",
    "LoginFailure",
    "LoginResult",
    "PlaintextVerifier",
    "ScryptVerifier",
    "SessionPolicy",
    "is_expired",
]
