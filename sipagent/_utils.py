"""Utilities and constants for the SIP register agent."""

import logging
from rich.console import Console
from rich.logging import RichHandler

# Rich Console for pretty printing
console = Console()

# Configure logging with RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
)

# Get logger for the package
logger = logging.getLogger("sipagent")

EOL = "\r\n"
SCHEME = "SIP"
VERSION = "2.0"
BRANCH = "z9hG4bK"

# Event package and body type used for message-waiting indication (RFC 3842)
MWI_EVENT = "message-summary"
MWI_CONTENT_TYPE = "application/simple-message-summary"

# Compact header forms (RFC 3261 Section 7.3.3), compact -> lowercase name
HEADERS_COMPACT = {
    "v": "via",
    "f": "from",
    "t": "to",
    "m": "contact",
    "i": "call-id",
    "l": "content-length",
    "c": "content-type",
    "o": "event",
    "u": "allow-events",
}

# Headers whose canonical form is not plain Title-Case, plus the ones
# this agent reads or writes
HEADERS = {
    "call-id": "Call-ID",
    "cseq": "CSeq",
    "www-authenticate": "WWW-Authenticate",
    "proxy-authenticate": "Proxy-Authenticate",
    "authorization": "Authorization",
    "proxy-authorization": "Proxy-Authorization",
    "authentication-info": "Authentication-Info",
    "via": "Via",
    "from": "From",
    "to": "To",
    "max-forwards": "Max-Forwards",
    "contact": "Contact",
    "content-type": "Content-Type",
    "content-length": "Content-Length",
    "expires": "Expires",
    "user-agent": "User-Agent",
    "event": "Event",
    "allow-events": "Allow-Events",
    "accept": "Accept",
    "subscription-state": "Subscription-State",
}

# Reason phrases for the responses a registrar or notifier sends back
REASON_PHRASES = {
    100: "Trying",
    200: "OK",
    202: "Accepted",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    423: "Interval Too Brief",
    481: "Call/Transaction Does Not Exist",
    489: "Bad Event",
    500: "Internal Server Error",
    503: "Service Unavailable",
}
