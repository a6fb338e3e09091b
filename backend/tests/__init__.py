# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from academy.models.competition import Competition  # noqa: F401
from academy.models.court import Court  # noqa: F401
from academy.models.court_block import CourtBlock  # noqa: F401
from academy.models.enrollment import Enrollment  # noqa: F401
from academy.models.profile import Profile  # noqa: F401
from academy.models.reservation import Reservation  # noqa: F401
