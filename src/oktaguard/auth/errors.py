from enum import Enum


class ErrorCode(Enum):
    """Standard error codes for token verification"""

    # Token structure errors
    MALFORMED_TOKEN = "JWT_001"
    KEY_NOT_FOUND = "JWT_002"
    UNSUPPORTED_ALGORITHM = "JWT_003"
    INVALID_SIGNATURE = "JWT_004"
    CLAIMS_DESERIALIZATION = "JWT_005"

    # Claim policy errors
    TOKEN_EXPIRED = "CLAIM_001"
    TOKEN_NOT_YET_VALID = "CLAIM_002"
    INVALID_ISSUER = "CLAIM_003"
    INVALID_AUDIENCE = "CLAIM_004"
    INVALID_CLIENT_ID = "CLAIM_005"

    # Infrastructure errors
    KEY_SET_FETCH = "INFRA_001"
    KEY_SET_PARSE = "INFRA_002"

    # Configuration errors
    INVALID_CONFIGURATION = "CONF_001"


class VerifierError(Exception):
    """Base exception for token verification errors"""

    status_code: int = 500

    def __init__(self, message: str, error_code: ErrorCode | None = None, details: dict | None = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}
        self.message = message

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {self.message}"
        return self.message


class ConfigurationError(VerifierError, ValueError):
    """Raised when the verifier is built with an unusable issuer or endpoint"""

    def __init__(self, message: str = "Invalid verifier configuration", details: dict | None = None):
        super().__init__(message, ErrorCode.INVALID_CONFIGURATION, details)


# Token Errors
class TokenError(VerifierError):
    """Base class for errors caused by the presented token"""

    status_code = 401


class MalformedTokenError(TokenError):
    """Raised when the token is not a well-formed compact JWS"""

    def __init__(self, message: str = "Malformed token", details: dict | None = None):
        super().__init__(message, ErrorCode.MALFORMED_TOKEN, details)


class KeyNotFoundError(TokenError):
    """Raised when no published key matches the token's kid"""

    def __init__(self, kid: str, details: dict | None = None):
        self.kid = kid
        super().__init__(f"No matching key found for kid '{kid}'", ErrorCode.KEY_NOT_FOUND, details)


class UnsupportedAlgorithmError(TokenError):
    """Raised when the key's algorithm cannot be used for verification"""

    def __init__(self, message: str = "Unsupported signing algorithm", details: dict | None = None):
        super().__init__(message, ErrorCode.UNSUPPORTED_ALGORITHM, details)


class InvalidSignatureError(TokenError):
    """Raised when the token signature does not verify"""

    def __init__(self, message: str = "Signature verification failed", details: dict | None = None):
        super().__init__(message, ErrorCode.INVALID_SIGNATURE, details)


class ClaimsDeserializationError(TokenError):
    """Raised when the payload cannot be mapped onto the requested claims type"""

    def __init__(self, message: str = "Claims could not be deserialized", details: dict | None = None):
        super().__init__(message, ErrorCode.CLAIMS_DESERIALIZATION, details)


# Claim Errors
class TokenExpiredError(TokenError):
    """Raised when token has expired"""

    def __init__(self, message: str = "Token has expired", details: dict | None = None):
        super().__init__(message, ErrorCode.TOKEN_EXPIRED, details)


class TokenNotYetValidError(TokenError):
    """Raised when the token's nbf lies in the future"""

    def __init__(self, message: str = "Token is not yet valid", details: dict | None = None):
        super().__init__(message, ErrorCode.TOKEN_NOT_YET_VALID, details)


class InvalidIssuerError(TokenError):
    """Raised when the iss claim does not match the configured issuer"""

    def __init__(self, message: str = "Invalid issuer", details: dict | None = None):
        super().__init__(message, ErrorCode.INVALID_ISSUER, details)


class InvalidAudienceError(TokenError):
    """Raised when the aud claim shares no value with the accepted audiences"""

    def __init__(self, message: str = "Invalid audience", details: dict | None = None):
        super().__init__(message, ErrorCode.INVALID_AUDIENCE, details)


class InvalidClientIdError(TokenError):
    """Raised when the cid claim does not match the configured client id"""

    def __init__(self, message: str = "Invalid client id", details: dict | None = None):
        super().__init__(message, ErrorCode.INVALID_CLIENT_ID, details)


# Infrastructure Errors
class InfrastructureError(VerifierError):
    """Base class for errors reaching or reading the issuer's key set"""

    status_code = 503


class KeySetFetchError(InfrastructureError):
    """Raised when the keys endpoint cannot be reached or answers non-2xx"""

    def __init__(self, message: str = "Failed to fetch key set", details: dict | None = None):
        super().__init__(message, ErrorCode.KEY_SET_FETCH, details)


class KeySetParseError(InfrastructureError):
    """Raised when the keys endpoint returns something other than a JWKS document"""

    def __init__(self, message: str = "Invalid key set document", details: dict | None = None):
        super().__init__(message, ErrorCode.KEY_SET_PARSE, details)
