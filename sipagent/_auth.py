"""
Challenge resolver for SIP digest authentication.

This module turns a 401/407 response into an authenticated retry of the
pending request. It is shared by the registration state machine and the
MWI subscriber, which both hand it the same RegistrationSession so that
a realm learned from one challenge is reused by the other.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ._models._auth import AuthParser, DigestAuth, DigestChallenge, DigestCredentials
from ._types import AuthenticationError
from ._utils import logger

if TYPE_CHECKING:
    from ._models._message import Request, Response
    from ._register import RegistrationSession


class ChallengeResolver:
    """
    Resolves digest challenges for a RegistrationSession.

    Behaviour:
    1. 407 selects Proxy-Authenticate/Proxy-Authorization, 401 selects
       WWW-Authenticate/Authorization; other codes cannot be resolved
    2. The challenge realm replaces the stored realm (server is authoritative)
    3. qop becomes "auth" if the challenge advertises any qop options,
       None (unqualified digest) otherwise
    4. The digest is computed over the request method and Request-URI and
       the resulting header is set on the request
    """

    def handle_authentication(
        self,
        status_code: int,
        response: Response,
        request: Request,
        session: RegistrationSession,
    ) -> bool:
        """
        Add an authorization header answering `response` to `request`.

        Args:
            status_code: Status code of the failure response
            response: The 401/407 response carrying the challenge
            request: The request to retry (modified in place)
            session: Credential holder; realm and qop are updated

        Returns:
            True if the request now carries a usable authorization header,
            False if the challenge cannot be answered
        """
        if status_code not in (401, 407):
            return False

        try:
            challenge = AuthParser.parse_from_headers(
                response.headers, proxy=status_code == 407
            )
        except AuthenticationError as e:
            logger.warning(f"🔐 Cannot authenticate: {e}")
            return False

        if challenge is None:
            logger.warning(
                f"🔐 {status_code} response without a matching challenge header"
            )
            return False

        session.realm = challenge.realm
        logger.debug(f"qop-options: {challenge.qop}")
        session.qop = "auth" if challenge.qop_options else None

        header_name = AuthParser.get_auth_header_name(challenge)
        request.headers[header_name] = self.build_authorization(
            challenge, request, session.credentials(), session.qop
        )
        logger.info(
            f"🔐 Answering {status_code} challenge for realm {challenge.realm!r}"
        )
        return True

    def preemptive_authorization(
        self, request: Request, session: RegistrationSession
    ) -> Optional[str]:
        """
        Build an Authorization header from the stored next nonce.

        Returns:
            Header value, or None if no nonce or realm is known yet
        """
        if not session.next_nonce or not session.realm:
            return None

        challenge = DigestChallenge(
            realm=session.realm,
            nonce=session.next_nonce,
            qop=session.qop,
        )
        return self.build_authorization(
            challenge, request, session.credentials(), session.qop
        )

    @staticmethod
    def build_authorization(
        challenge: DigestChallenge,
        request: Request,
        credentials: DigestCredentials,
        qop: Optional[str],
    ) -> str:
        """Compute the digest header value for `request` against `challenge`."""
        auth = DigestAuth(credentials=credentials, challenge=challenge)
        return auth.build_authorization(request.method, request.uri, qop=qop)


__all__ = ["ChallengeResolver"]
