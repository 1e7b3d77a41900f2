from .base import Base

# Tournament structure
from .edition import Edition, Status
from .event import Event

# People
from .participant import Participant, Gender, ParticipantType
from .team import Team, TeamScore, EventScore

# Registrations
from .registration import EditionRegistration, EventRegistration
