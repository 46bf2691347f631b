"""
SIP Digest authentication (RFC 2617/7616 as profiled by RFC 3261).

Implements the client side of the SIP challenge-response model:
- Challenge parsing from 401 Unauthorized / 407 Proxy Authentication Required
- Authorization/Proxy-Authorization header generation
- qop=auth and unqualified (RFC 2069) digests
- MD5 and SHA-256 hash algorithms

Security Notes:
- Digest provides message authentication but NOT integrity/confidentiality
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass

from .._types import AuthenticationError, HeaderTypes


# ============================================================================
# Credentials and Challenge
# ============================================================================


@dataclass
class DigestCredentials:
    """
    Credentials for SIP Digest authentication.

    Attributes:
        username: SIP username/identity
        password: Plain text password
        realm: Authentication realm (optional, usually from challenge)
    """

    username: str
    password: str
    realm: str | None = None


@dataclass
class DigestChallenge:
    """
    Parsed Digest challenge from a WWW-Authenticate or Proxy-Authenticate header.

    Attributes:
        realm: Protection space (realm) - identifies credential domain
        nonce: Server-specified nonce value for replay attack prevention
        algorithm: Hash algorithm (MD5, SHA-256)
        qop: Raw quality of protection options (e.g. 'auth,auth-int'), None if absent
        opaque: Server-specified opaque value (returned unchanged by client)
        is_proxy: True if from Proxy-Authenticate header
    """

    realm: str
    nonce: str = ""
    algorithm: str = "MD5"
    qop: str | None = None
    opaque: str | None = None
    is_proxy: bool = False

    @property
    def qop_options(self) -> list[str]:
        """Return the advertised qop options as a list."""
        if not self.qop:
            return []
        return [q.strip() for q in self.qop.split(",") if q.strip()]

    @classmethod
    def parse(cls, header_value: str) -> DigestChallenge:
        """
        Parse WWW-Authenticate or Proxy-Authenticate header value.

        Args:
            header_value: Header value (e.g., 'Digest realm="atlanta.com", nonce="..."')

        Raises:
            AuthenticationError: If header is not Digest or carries no realm
        """
        value = header_value.strip()
        if not value.lower().startswith("digest "):
            raise AuthenticationError(f"Expected Digest challenge, got: {value[:20]}")

        params = _parse_auth_params(value[7:].strip())

        if not params.get("realm"):
            raise AuthenticationError("Digest challenge missing realm")

        return cls(
            realm=params["realm"],
            nonce=params.get("nonce", ""),
            algorithm=params.get("algorithm", "MD5"),
            qop=params.get("qop"),
            opaque=params.get("opaque"),
        )


# ============================================================================
# Digest Authentication
# ============================================================================


@dataclass
class DigestAuth:
    """
    Builds Authorization/Proxy-Authorization values for one challenge.

    Usage:
        challenge = AuthParser.parse_from_headers(response.headers, proxy=False)
        auth = DigestAuth(DigestCredentials("alice", "secret"), challenge)
        request.headers["Authorization"] = auth.build_authorization(
            "REGISTER", "sip:example.com", qop="auth"
        )
    """

    credentials: DigestCredentials
    challenge: DigestChallenge
    nonce_count: int = 0
    client_nonce: str | None = None

    def build_authorization(
        self,
        method: str,
        uri: str,
        *,
        qop: str | None = None,
    ) -> str:
        """
        Build the complete Digest header value.

        Args:
            method: SIP method (REGISTER, SUBSCRIBE, ...)
            uri: Request-URI (must match request line)
            qop: 'auth' for a qualified digest, None for RFC 2069 style

        Returns:
            Header value, e.g. 'Digest username="alice", realm="atlanta.com", ...'
        """
        self.nonce_count += 1
        nc_value = f"{self.nonce_count:08x}"

        cnonce = None
        if qop:
            if not self.client_nonce:
                self.client_nonce = secrets.token_hex(8)
            cnonce = self.client_nonce

        realm = self.challenge.realm or self.credentials.realm or ""

        response_hash = self.calculate_response(
            method=method,
            uri=uri,
            realm=realm,
            qop=qop,
            nc=nc_value if qop else None,
            cnonce=cnonce,
        )

        parts = [
            f'username="{self.credentials.username}"',
            f'realm="{realm}"',
            f'nonce="{self.challenge.nonce}"',
            f'uri="{uri}"',
            f'response="{response_hash}"',
            f"algorithm={self.challenge.algorithm}",
        ]

        if self.challenge.opaque:
            parts.append(f'opaque="{self.challenge.opaque}"')

        if qop:
            parts.extend([f"qop={qop}", f"nc={nc_value}", f'cnonce="{cnonce}"'])

        return "Digest " + ", ".join(parts)

    def calculate_response(
        self,
        method: str,
        uri: str,
        realm: str,
        qop: str | None = None,
        nc: str | None = None,
        cnonce: str | None = None,
    ) -> str:
        """Calculate digest response hash according to RFC 2617/7616."""
        if self.challenge.algorithm.upper().startswith("SHA-256"):
            hash_func = hashlib.sha256
        else:
            hash_func = hashlib.md5

        def h(data: str) -> str:
            return hash_func(data.encode()).hexdigest()

        nonce = self.challenge.nonce
        ha1 = h(f"{self.credentials.username}:{realm}:{self.credentials.password}")
        if self.challenge.algorithm.upper().endswith("-SESS") and cnonce:
            ha1 = h(f"{ha1}:{nonce}:{cnonce}")
        ha2 = h(f"{method}:{uri}")

        if qop and nc and cnonce:
            return h(f"{ha1}:{nonce}:{nc}:{cnonce}:{qop}:{ha2}")
        # RFC 2069 compatibility (no qop)
        return h(f"{ha1}:{nonce}:{ha2}")


# ============================================================================
# Authentication Parser
# ============================================================================


class AuthParser:
    """Locates and parses the challenge a 401/407 response carries."""

    @staticmethod
    def parse_from_headers(headers: HeaderTypes, *, proxy: bool) -> DigestChallenge | None:
        """
        Extract the challenge of the requested kind from SIP headers.

        Args:
            headers: Headers dict or Headers object
            proxy: True for Proxy-Authenticate (407), False for WWW-Authenticate (401)

        Returns:
            DigestChallenge if the header is present, None otherwise

        Raises:
            AuthenticationError: If the header is present but unusable
        """
        name = "Proxy-Authenticate" if proxy else "WWW-Authenticate"
        if name not in headers:
            return None

        challenge = DigestChallenge.parse(headers[name])
        challenge.is_proxy = proxy
        return challenge

    @staticmethod
    def get_auth_header_name(challenge: DigestChallenge) -> str:
        """
        Return "Proxy-Authorization" for Proxy-Authenticate challenges,
        "Authorization" otherwise.
        """
        if challenge.is_proxy:
            return "Proxy-Authorization"
        return "Authorization"


def _parse_auth_params(params_string: str) -> dict[str, str]:
    """
    Parse authentication parameter string into dict.

    Handles quoted values containing commas (qop="auth,auth-int").

    Args:
        params_string: Parameter string (e.g., 'realm="atlanta.com", nonce="abc"')
    """
    params: dict[str, str] = {}
    current_key = ""
    current_value = ""
    in_quotes = False
    in_value = False

    for char in params_string:
        if char == '"':
            in_quotes = not in_quotes
            continue

        if not in_quotes:
            if char == "=" and not in_value:
                in_value = True
                current_key = current_key.strip()
                continue

            if char == ",":
                if in_value:
                    params[current_key.lower()] = current_value.strip()
                current_key = ""
                current_value = ""
                in_value = False
                continue

        if in_value:
            current_value += char
        else:
            current_key += char

    if current_key and in_value:
        params[current_key.lower()] = current_value.strip()

    return params


__all__ = [
    "DigestAuth",
    "DigestChallenge",
    "DigestCredentials",
    "AuthParser",
]
