"""
Configuration module for the ATS sync backend.
Centralizes environment variables, logging setup, and constants.
"""
import os
import logging
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()

# ============================================================================
# Environment Configuration
# ============================================================================

# Environment identifier (production, staging, development, etc.)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "production")

# Public base URL of this service (used for OAuth redirect and webhook URLs)
PUBLIC_API_URL = os.environ.get("PUBLIC_API_URL", "http://localhost:8080").rstrip("/")

# Admin frontend base URL (OAuth callback redirects land here)
ADMIN_URL = os.environ.get("ADMIN_URL", "http://localhost:3000").rstrip("/")

# ============================================================================
# Database Configuration
# ============================================================================

# Required once the pool is created, see src/database.py
DATABASE_URL = os.environ.get("DATABASE_URL")

# ============================================================================
# JobAdder Configuration
# ============================================================================

JOBADDER_API_URL = os.environ.get("JOBADDER_API_URL", "https://api.jobadder.com/v2").rstrip("/")
JOBADDER_WEBHOOK_SECRET = os.environ.get("JOBADDER_WEBHOOK_SECRET", "")
JOBADDER_SIGNATURE_HEADER = "X-JobAdder-Signature"

# Where JobAdder delivers webhooks (registered on OAuth connect)
JOBADDER_WEBHOOK_PATH = "/api/webhooks/jobadder"
JOBADDER_WEBHOOK_URL = f"{PUBLIC_API_URL}{JOBADDER_WEBHOOK_PATH}"

# Outbound HTTP limits
JOBADDER_HTTP_TIMEOUT = float(os.environ.get("JOBADDER_HTTP_TIMEOUT", "30"))
JOBADDER_MAX_ATTEMPTS = int(os.environ.get("JOBADDER_MAX_ATTEMPTS", "3"))
JOBADDER_PAGE_SIZE = int(os.environ.get("JOBADDER_PAGE_SIZE", "100"))

# Initial sync after OAuth connect is capped at this many records per resource
JOBADDER_INITIAL_SYNC_LIMIT = int(os.environ.get("JOBADDER_INITIAL_SYNC_LIMIT", "100"))

# Locations in the home country are rendered without the country name
JOBADDER_HOME_COUNTRY = os.environ.get("JOBADDER_HOME_COUNTRY", "Australia")
JOBADDER_DEFAULT_CURRENCY = os.environ.get("JOBADDER_DEFAULT_CURRENCY", "AUD")

# Events we subscribe to when registering the webhook
JOBADDER_WEBHOOK_EVENTS = [
    "job.created",
    "job.updated",
    "job.deleted",
    "candidate.created",
    "candidate.updated",
    "candidate.deleted",
]

# ============================================================================
# Sync Scheduler Configuration
# ============================================================================

SYNC_SCHEDULER_ENABLED = os.environ.get("SYNC_SCHEDULER_ENABLED", "true").lower() == "true"
SYNC_INTERVAL_SECONDS = int(os.environ.get("SYNC_INTERVAL_SECONDS", "3600"))
SYNC_LOOKBACK_HOURS = int(os.environ.get("SYNC_LOOKBACK_HOURS", "24"))
SYNC_MAX_CONCURRENCY = int(os.environ.get("SYNC_MAX_CONCURRENCY", "4"))

# Bearer token for the manual sync endpoint
SYNC_ADMIN_TOKEN = os.environ.get("SYNC_ADMIN_TOKEN", "")

# ============================================================================
# Webhook / Privacy Configuration
# ============================================================================

# Processed webhookIds are remembered this long; 0 disables duplicate suppression
WEBHOOK_DEDUP_TTL_SECONDS = int(os.environ.get("WEBHOOK_DEDUP_TTL_SECONDS", "600"))

# Consent assumed for candidates without an explicit consent record
PRIVACY_ASSUME_CONSENT = os.environ.get("PRIVACY_ASSUME_CONSENT", "false").lower() == "true"

# Candidate data retention window applied to synced candidates
DATA_RETENTION_DAYS = int(os.environ.get("DATA_RETENTION_DAYS", "730"))

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# ============================================================================
# Application Constants
# ============================================================================

# Source identifier stored on every synced record
ATS_SOURCE = "jobadder"

# Document collections
COLLECTION_TENANTS = "tenants"
COLLECTION_JOBS = "jobs"
COLLECTION_CANDIDATES = "candidates"
COLLECTION_CREDENTIALS = "ats_credentials"

# Reference vocabulary for resume skill extraction
SKILL_VOCABULARY = [
    "JavaScript",
    "TypeScript",
    "React",
    "Node.js",
    "Python",
    "Java",
    "C#",
    ".NET",
    "AWS",
    "Azure",
    "GCP",
    "Docker",
    "Kubernetes",
    "SQL",
    "NoSQL",
    "MongoDB",
    "Project Management",
    "Agile",
    "Scrum",
    "Leadership",
    "Communication",
    "Marketing",
    "Sales",
    "Customer Service",
    "Data Analysis",
    "Machine Learning",
]
