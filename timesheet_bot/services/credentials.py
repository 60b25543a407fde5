"""
Credential providers
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from ..models.form import Credentials

SMARTSHEET_SERVICE = "smartsheet"


class CredentialProvider(ABC):
    """Looks up login credentials by service name"""

    @abstractmethod
    def get(self, service: str) -> Optional[Credentials]:
        pass


class StaticCredentialProvider(CredentialProvider):
    """Credentials held in memory, keyed by service name"""

    def __init__(self, credentials: Optional[Dict[str, Credentials]] = None):
        self._credentials: Dict[str, Credentials] = dict(credentials or {})

    def store(self, service: str, identity: str, secret: str):
        self._credentials[service] = Credentials(identity=identity, secret=secret)

    def delete(self, service: str) -> bool:
        return self._credentials.pop(service, None) is not None

    def get(self, service: str) -> Optional[Credentials]:
        return self._credentials.get(service)


class EnvCredentialProvider(CredentialProvider):
    """Reads <SERVICE>_EMAIL and <SERVICE>_PASSWORD from the environment"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def get(self, service: str) -> Optional[Credentials]:
        prefix = service.upper()
        identity = self._environ.get(f"{prefix}_EMAIL", "").strip()
        secret = self._environ.get(f"{prefix}_PASSWORD", "")
        if not identity or not secret:
            return None
        return Credentials(identity=identity, secret=secret)
