import hashlib
import os

# Redis Connection

REDIS_HOST              = os.environ.get("CERTREG_REDIS_HOST", "localhost")
REDIS_PORT              = int(os.environ.get("CERTREG_REDIS_PORT", "6379"))
REDIS_LEDGER_DB         = int(os.environ.get("CERTREG_REDIS_DB", "2"))
REDIS_SOCKET_TIMEOUT    = 5          # seconds

# Key Namespace Prefixes

RECORD_KEY_PREFIX       = "certreg:v1:record"       # certreg:v1:record:{address_hex}
ISSUER_IDX_PREFIX       = "certreg:v1:idx:issuer"     # certreg:v1:idx:issuer:{authority_hex}
RECIPIENT_IDX_PREFIX    = "certreg:v1:idx:recipient"  # certreg:v1:idx:recipient:{recipient_hex}
EVENT_STREAM_KEY        = "certreg:v1:events"
REQUEST_KEY_PREFIX      = "certreg:v1:request"      # certreg:v1:request:{sha256(signer || signature)}

# Address Derivation

REGISTRY_SEED           = b"registry"
ISSUER_SEED             = b"issuer"
CERTIFICATE_SEED        = b"certificate"
ADDRESS_MARKER          = b"ProgramDerivedAddress"
MAX_SEED_LEN            = 64
MAX_SEEDS               = 16

# 32-byte deployment identifier mixed into every derived address
_DEFAULT_PROGRAM_ID     = hashlib.sha256(b"CertReg11111111111111111111111111111111111").hexdigest()
PROGRAM_ID              = bytes.fromhex(os.environ.get("CERTREG_PROGRAM_ID", _DEFAULT_PROGRAM_ID))

# Record Size Bounds (bytes, UTF-8 encoded)

MAX_NAME_LEN            = 100
MAX_DETAILS_LEN         = 500
MAX_CERTIFICATE_ID_LEN  = 64
MAX_METADATA_URI_LEN    = 200
PUBLIC_KEY_LEN          = 32

# Expiry sentinel: certificate never expires

NO_EXPIRY               = 0

# Transactions

OPTIMISTIC_LOCK_RETRIES = 8
EVENT_READ_BATCH        = 100
