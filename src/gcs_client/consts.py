"""High-value constants for the gcs-client package."""

# Package metadata
PACKAGE_VERSION = "0.3.0"
PACKAGE_NAME = "gcs-client"
USER_AGENT = f"{PACKAGE_NAME}/{PACKAGE_VERSION}"

# External API contract consts
OAUTH2_TOKEN_URL = "https://oauth2.googleapis.com/token"
METADATA_TOKEN_URL = (
    "http://metadata.google.internal/computeMetadata/v1/"
    "instance/service-accounts/default/token"
)
METADATA_FLAVOR_HEADER = {"Metadata-Flavor": "Google"}
STORAGE_READ_WRITE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"

# Business logic consts
TOKEN_REFRESH_BUFFER_SECONDS = 60  # treat tokens as expired 1min early
DEFAULT_TOKEN_EXPIRY_SECONDS = 3600  # 1 hour
JWT_ASSERTION_LIFETIME_SECONDS = 3600
