"""Reading gate domain exports."""

from .dedup import DedupGate  # noqa: F401
from .leads import InMemoryLeadRepository, LeadRecord, PostgresLeadRepository  # noqa: F401
from .limiter import LimiterKeys, SubmissionLimiter  # noqa: F401
from .models import GateSettings, SubmissionPayload, SubmitResult  # noqa: F401
from .service import SubmissionPipeline  # noqa: F401
from .tokens import GateTokenStore  # noqa: F401
