from dataclasses import dataclass

@dataclass
class RegistryRecord:
    admin:              bytes
    total_certificates: int
    total_issuers:      int
    bump:               int

@dataclass
class IssuerRecord:
    authority:         bytes
    name:              str
    details:           str
    active:            bool
    registration_date: int
    total_issued:      int
    bump:              int

@dataclass
class CertificateRecord:
    certificate_id: str
    issuer:         bytes
    recipient:      bytes
    issue_date:     int
    expiry_date:    int
    revoked:        bool
    metadata_uri:   str
    bump:           int

@dataclass
class CertificateStatus:
    certificate_id: str
    revoked:        bool
    expired:        bool
    is_valid:       bool

@dataclass
class HealthStatus:
    connected:      bool
    record_count:   int
    event_count:    int
    uptime_seconds: float


# ─── Events ───

@dataclass
class RegistryInitialized:
    admin:     bytes
    timestamp: int

@dataclass
class IssuerRegistered:
    issuer:    bytes
    name:      str
    timestamp: int

@dataclass
class IssuerStatusUpdated:
    issuer: bytes
    active: bool

@dataclass
class CertificateIssued:
    certificate_id: str
    issuer:         bytes
    recipient:      bytes
    issue_date:     int
    metadata_uri:   str

@dataclass
class CertificateRevoked:
    certificate_id: str
    issuer:         bytes
    timestamp:      int
