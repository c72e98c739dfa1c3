from enum import Enum


class ErrorCategory(str, Enum):
    VALIDATION = "validation"        # malformed input, nothing was read or written
    AUTHORIZATION = "authorization"  # signer lacks the role the operation needs
    STATE = "state"                  # conflicts with the current persisted records
    SYSTEM = "system"                # substrate unavailable or contended


class CertRegistryError(Exception):
    category = ErrorCategory.SYSTEM


# ── Validation ──

class ValidationError(CertRegistryError):
    category = ErrorCategory.VALIDATION


class InvalidNameError(ValidationError):
    def __init__(self , length):
        self.length = length
        message = f"Invalid name length {length}"
        super().__init__(message)

class InvalidDetailsError(ValidationError):
    def __init__(self , length):
        self.length = length
        message = f"Invalid details length {length}"
        super().__init__(message)

class InvalidCertificateIdError(ValidationError):
    def __init__(self , certificate_id):
        self.certificate_id = certificate_id
        message = f"Invalid certificate ID {certificate_id!r}"
        super().__init__(message)

class InvalidMetadataUriError(ValidationError):
    def __init__(self , length):
        self.length = length
        message = f"Invalid metadata URI length {length}"
        super().__init__(message)

class InvalidExpiryDateError(ValidationError):
    def __init__(self , expiry_date, now):
        self.expiry_date = expiry_date
        self.now = now
        message = f"Invalid expiry date {expiry_date}: must be 0 or later than {now}"
        super().__init__(message)

class InvalidPublicKeyError(ValidationError):
    def __init__(self , label, length):
        self.label = label
        message = f"Invalid {label} key: expected 32 bytes, got {length}"
        super().__init__(message)

class AddressDerivationError(ValidationError):
    def __init__(self , message):
        message = f"Address derivation failed: {message}"
        super().__init__(message)

class InvalidCursorError(ValidationError):
    def __init__(self , cursor):
        self.cursor = cursor
        message = f"Invalid event stream id {cursor!r}"
        super().__init__(message)


# ── Authorization ──

class AuthorizationError(CertRegistryError):
    category = ErrorCategory.AUTHORIZATION


class UnauthorizedError(AuthorizationError):
    def __init__(self , operation):
        self.operation = operation
        message = f"Signer is not the registry admin: {operation}"
        super().__init__(message)

class UnauthorizedIssuerError(AuthorizationError):
    def __init__(self , signer_hex):
        self.signer_hex = signer_hex
        message = f"Unauthorized issuer {signer_hex}"
        super().__init__(message)

class UnauthorizedRevokeError(AuthorizationError):
    def __init__(self , certificate_id):
        self.certificate_id = certificate_id
        message = f"Unauthorized to revoke certificate {certificate_id}"
        super().__init__(message)

class InvalidSignatureError(AuthorizationError):
    def __init__(self , operation):
        self.operation = operation
        message = f"Signature verification failed for {operation}"
        super().__init__(message)

class StaleRequestError(AuthorizationError):
    def __init__(self , timestamp, now):
        self.timestamp = timestamp
        self.now = now
        message = f"Request timestamp {timestamp} outside accepted window at {now}"
        super().__init__(message)

class ReplayedRequestError(AuthorizationError):
    def __init__(self , operation):
        self.operation = operation
        message = f"Signed request already used: {operation}"
        super().__init__(message)


# ── State ──

class StateError(CertRegistryError):
    category = ErrorCategory.STATE


class AlreadyInitializedError(StateError):
    def __init__(self):
        super().__init__("Registry already initialized")

class NotInitializedError(StateError):
    def __init__(self):
        super().__init__("Registry not initialized")

class AlreadyExistsError(StateError):
    def __init__(self , kind, key):
        self.kind = kind
        self.key = key
        message = f"{kind} {key} already exists"
        super().__init__(message)

class NotFoundError(StateError):
    def __init__(self , kind, key):
        self.kind = kind
        self.key = key
        message = f"{kind} {key} not found"
        super().__init__(message)

class IssuerNotActiveError(StateError):
    def __init__(self , authority_hex):
        self.authority_hex = authority_hex
        message = f"Issuer {authority_hex} is not active"
        super().__init__(message)

class AlreadyRevokedError(StateError):
    def __init__(self , certificate_id):
        self.certificate_id = certificate_id
        message = f"Certificate {certificate_id} already revoked"
        super().__init__(message)


# ── System ──

class RegistryUnavailableError(CertRegistryError):
    def __init__(self , message):
        message = f"Ledger unavailable: {message}"
        super().__init__(message)

class ConcurrencyError(CertRegistryError):
    def __init__(self, operation):
        message = f"Optimistic lock failed after max retries: {operation}"
        super().__init__(message)
