"""
Input and output schema for the trust & matching core.

Defines the records exchanged at the request/response boundary. Every
record converts to and from plain dictionaries so callers can pass
JSON-like structures; dictionary keys may be snake_case or camelCase.

Profile Composition (Dream DNA):
- Identity: vision embedding, core values, shadow traits, emotion valence/arousal
- Capability: skill vector plus labeled hard/soft skill maps
- Execution: grit, completion rate, sales performance, launched flag
- Trust: per-service trust components and the derived composite
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, FrozenSet, Sequence, Tuple

from ..exceptions import InvalidInputError

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(key: str) -> str:
    """Convert a camelCase key to snake_case (snake_case passes through)."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Snake-case the top-level keys of an input dictionary."""
    return {to_snake_case(k): v for k, v in data.items()}


def _as_float_tuple(values: Sequence[float], name: str) -> Tuple[float, ...]:
    """Validate a numeric vector and freeze it as a tuple of floats."""
    result = tuple(float(v) for v in values)
    if not all(math.isfinite(v) for v in result):
        raise InvalidInputError(f"{name} must contain only finite values")
    return result


class LifecycleStage(Enum):
    """Project lifecycle stage, ordered from earliest to latest."""
    IDEATION = "IDEATION"      # Vision & personality alignment phase
    BUILDING = "BUILDING"      # Building the MVP, technical skills dominate
    SCALING = "SCALING"        # Scaling the product, trust & delivery dominate


class ServiceTag(Enum):
    """Platform services that emit trust signals."""
    BRAIN = "brain"            # Journaling
    PLANNER = "planner"        # Scheduling / planning
    STORE = "store"            # Commerce
    CAFE = "cafe"              # Physical check-in
    PLACE = "place"            # Matchmaking


@dataclass
class ServiceTrustSignal:
    """
    One trust observation emitted by one service.

    Attributes:
        service: Service that produced the signal
        score: Raw trust score on the service's own scale
        mean: Population mean of the service's score distribution
        std: Population standard deviation of the score distribution
        reliability: Evidence weight, e.g. number of underlying interactions
    """
    service: ServiceTag
    score: float
    mean: float
    std: float
    reliability: float

    def __post_init__(self):
        """Validate ranges and convert string tags."""
        if isinstance(self.service, str):
            try:
                self.service = ServiceTag(self.service)
            except ValueError:
                raise InvalidInputError(f"Unknown service tag: {self.service}")

        for attr in ["score", "mean", "std", "reliability"]:
            val = getattr(self, attr)
            if not isinstance(val, (int, float)) or not math.isfinite(val):
                raise InvalidInputError(f"{attr} must be a finite number, got {val}")

        if self.std < 0:
            raise InvalidInputError(f"std must be non-negative, got {self.std}")
        if self.reliability < 0:
            raise InvalidInputError(f"reliability must be non-negative, got {self.reliability}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with string values."""
        return {
            "service": self.service.value,
            "score": self.score,
            "mean": self.mean,
            "std": self.std,
            "reliability": self.reliability
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceTrustSignal":
        """Create from dictionary."""
        return cls(**normalize_keys(data))


@dataclass(frozen=True)
class TrustVector:
    """
    Per-actor trust record.

    composite_trust is derived: build it with from_signals (or
    to_trust_vector when the composite is already known) and never
    assign it independently.

    Attributes:
        offline_reputation: Offline (check-in) reputation (0 ... 1)
        doorbell_response_rate: Doorbell response rate (0 ... 1)
        delivery_compliance: Commerce delivery compliance rate (0 ... 1)
        composite_trust: Aggregated cross-service trust (0 ... 1, open)
    """
    offline_reputation: float = 0.0
    doorbell_response_rate: float = 0.0
    delivery_compliance: float = 0.0
    composite_trust: float = 0.5

    def __post_init__(self):
        """Validate component and composite ranges."""
        for attr in ["offline_reputation", "doorbell_response_rate", "delivery_compliance"]:
            val = getattr(self, attr)
            if not isinstance(val, (int, float)) or not 0 <= val <= 1:
                raise InvalidInputError(f"{attr} must be in [0, 1], got {val}")
        val = self.composite_trust
        if not isinstance(val, (int, float)) or not 0 < val < 1:
            raise InvalidInputError(f"composite_trust must be in (0, 1), got {val}")

    @classmethod
    def from_signals(
        cls,
        signals: List[ServiceTrustSignal],
        offline_reputation: float = 0.0,
        doorbell_response_rate: float = 0.0,
        delivery_compliance: float = 0.0,
        **aggregator_options: Any
    ) -> "TrustVector":
        """Recompute the composite from the latest signals."""
        from ..trust.aggregator import compute_cross_service_trust

        return cls(
            offline_reputation=offline_reputation,
            doorbell_response_rate=doorbell_response_rate,
            delivery_compliance=delivery_compliance,
            composite_trust=compute_cross_service_trust(signals, **aggregator_options)
        )

    def with_components(self, signals: List[ServiceTrustSignal], **components: float) -> "TrustVector":
        """Return a new vector with updated components and a recomputed composite."""
        current = {
            "offline_reputation": self.offline_reputation,
            "doorbell_response_rate": self.doorbell_response_rate,
            "delivery_compliance": self.delivery_compliance,
        }
        unknown = set(components) - set(current)
        if unknown:
            raise InvalidInputError(f"Unknown trust components: {sorted(unknown)}")
        current.update(components)
        return TrustVector.from_signals(signals, **current)

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "offline_reputation": self.offline_reputation,
            "doorbell_response_rate": self.doorbell_response_rate,
            "delivery_compliance": self.delivery_compliance,
            "composite_trust": self.composite_trust
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrustVector":
        """Create from dictionary."""
        return cls(**normalize_keys(data))


@dataclass
class IdentityVector:
    """
    Identity sub-vector (sourced from journaling and dialogue sessions).

    Attributes:
        vision_embedding: Fixed-length semantic embedding of the actor's vision
        core_values: Core value labels
        shadow_traits: Shadow trait labels
        emotion_valence: Voice-tone valence (-1 ... 1)
        emotion_arousal: Voice-tone arousal (0 ... 1)
    """
    vision_embedding: Tuple[float, ...]
    core_values: List[str] = field(default_factory=list)
    shadow_traits: List[str] = field(default_factory=list)
    emotion_valence: float = 0.0
    emotion_arousal: float = 0.0

    def __post_init__(self):
        """Validate embedding and emotion ranges."""
        self.vision_embedding = _as_float_tuple(self.vision_embedding, "vision_embedding")
        if not -1 <= self.emotion_valence <= 1:
            raise InvalidInputError(f"emotion_valence must be in [-1, 1], got {self.emotion_valence}")
        if not 0 <= self.emotion_arousal <= 1:
            raise InvalidInputError(f"emotion_arousal must be in [0, 1], got {self.emotion_arousal}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vision_embedding": list(self.vision_embedding),
            "core_values": list(self.core_values),
            "shadow_traits": list(self.shadow_traits),
            "emotion_valence": self.emotion_valence,
            "emotion_arousal": self.emotion_arousal
        }


@dataclass
class CapabilityVector:
    """
    Capability sub-vector (sourced from planning and matchmaking).

    Attributes:
        skill_vector: Fixed-length skill vector for algorithmic processing
        hard_skills: Hard skill label -> proficiency (0 ... 1)
        soft_skills: Soft skill label -> proficiency (0 ... 1)
    """
    skill_vector: Tuple[float, ...]
    hard_skills: Dict[str, float] = field(default_factory=dict)
    soft_skills: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self.skill_vector = _as_float_tuple(self.skill_vector, "skill_vector")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skill_vector": list(self.skill_vector),
            "hard_skills": dict(self.hard_skills),
            "soft_skills": dict(self.soft_skills)
        }


@dataclass
class ExecutionVector:
    """Execution sub-vector (sourced from planning and commerce)."""
    grit_score: float = 0.0
    completion_rate: float = 0.0
    sales_performance: float = 0.0
    mvp_launched: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grit_score": self.grit_score,
            "completion_rate": self.completion_rate,
            "sales_performance": self.sales_performance,
            "mvp_launched": self.mvp_launched
        }


@dataclass
class DreamDna:
    """
    Complete profile of one actor.

    Attributes:
        user_id: Actor identifier
        identity: IdentityVector instance
        capability: CapabilityVector instance
        execution: ExecutionVector instance
        trust: TrustVector instance
    """
    user_id: str
    identity: IdentityVector
    capability: CapabilityVector
    execution: ExecutionVector = field(default_factory=ExecutionVector)
    trust: TrustVector = field(default_factory=TrustVector)

    def __post_init__(self):
        """Convert nested dictionaries."""
        if isinstance(self.identity, dict):
            self.identity = IdentityVector(**normalize_keys(self.identity))
        if isinstance(self.capability, dict):
            self.capability = CapabilityVector(**normalize_keys(self.capability))
        if isinstance(self.execution, dict):
            self.execution = ExecutionVector(**normalize_keys(self.execution))
        if isinstance(self.trust, dict):
            self.trust = TrustVector.from_dict(self.trust)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "identity": self.identity.to_dict(),
            "capability": self.capability.to_dict(),
            "execution": self.execution.to_dict(),
            "trust": self.trust.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DreamDna":
        """Create from dictionary."""
        d = normalize_keys(data)
        return cls(
            user_id=d["user_id"],
            identity=d["identity"],
            capability=d["capability"],
            execution=d.get("execution", {}),
            trust=d.get("trust", {})
        )


@dataclass
class Project:
    """
    A project seeking additional team members.

    Attributes:
        project_id: Project identifier
        required_skills: Target skill vector the project needs
        team_skills: Aggregated skill vector of the current team
        stage: Current lifecycle stage
        capacity: Maximum additional members accepted in one matching round
        team_members: Ids of current team members
        owner: Profile of the project owner (needed for profile-based scoring)
        data_points: Interaction history count of the owner
    """
    project_id: str
    required_skills: Tuple[float, ...]
    team_skills: Tuple[float, ...]
    stage: LifecycleStage = LifecycleStage.BUILDING
    capacity: int = 1
    team_members: FrozenSet[str] = frozenset()
    owner: Optional[DreamDna] = None
    data_points: int = 0

    def __post_init__(self):
        """Validate vectors, stage and capacity."""
        if isinstance(self.stage, str):
            try:
                self.stage = LifecycleStage(self.stage.upper())
            except ValueError:
                raise InvalidInputError(f"Unknown lifecycle stage: {self.stage}")
        if isinstance(self.owner, dict):
            self.owner = DreamDna.from_dict(self.owner)

        self.required_skills = _as_float_tuple(self.required_skills, "required_skills")
        self.team_skills = _as_float_tuple(self.team_skills, "team_skills")
        if len(self.required_skills) != len(self.team_skills):
            raise InvalidInputError(
                f"Project {self.project_id}: required_skills and team_skills must have same length: "
                f"{len(self.required_skills)} vs {len(self.team_skills)}"
            )

        if not isinstance(self.capacity, int) or self.capacity < 0:
            raise InvalidInputError(
                f"Project {self.project_id}: capacity must be a non-negative integer, got {self.capacity}"
            )
        if self.data_points < 0:
            raise InvalidInputError(f"Project {self.project_id}: data_points must be non-negative")
        self.team_members = frozenset(self.team_members)

    @property
    def gap_vector(self) -> Tuple[float, ...]:
        """Skills the current team lacks relative to the requirement."""
        from ..scoring.vectors import compute_gap_vector

        return tuple(float(v) for v in compute_gap_vector(self.required_skills, self.team_skills))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "project_id": self.project_id,
            "required_skills": list(self.required_skills),
            "team_skills": list(self.team_skills),
            "gap_vector": list(self.gap_vector),
            "stage": self.stage.value,
            "capacity": self.capacity,
            "team_members": sorted(self.team_members),
            "owner": self.owner.to_dict() if self.owner else None,
            "data_points": self.data_points
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create from dictionary (derived gap_vector is ignored)."""
        d = normalize_keys(data)
        d.pop("gap_vector", None)
        if "id" in d and "project_id" not in d:
            d["project_id"] = d.pop("id")
        if "lifecycle_stage" in d:
            d["stage"] = d.pop("lifecycle_stage")
        if "required_skill_vector" in d:
            d["required_skills"] = d.pop("required_skill_vector")
        if "team_skills" not in d:
            d["team_skills"] = [0.0] * len(d["required_skills"])
        return cls(**d)


@dataclass
class Candidate:
    """
    A candidate available for matching.

    Attributes:
        candidate_id: Candidate identifier
        dna: The candidate's profile
        psych_fit_by_project: Psychological fit per project id (0 ... 1)
        data_points: Interaction history count of the candidate
    """
    candidate_id: str
    dna: Optional[DreamDna] = None
    psych_fit_by_project: Dict[str, float] = field(default_factory=dict)
    data_points: int = 0

    def __post_init__(self):
        if isinstance(self.dna, dict):
            self.dna = DreamDna.from_dict(self.dna)
        if self.data_points < 0:
            raise InvalidInputError(f"Candidate {self.candidate_id}: data_points must be non-negative")

    def psych_fit_for(self, project_id: str, default: float = 0.5) -> float:
        """Psychological fit for a project, neutral when unknown."""
        return self.psych_fit_by_project.get(project_id, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "dna": self.dna.to_dict() if self.dna else None,
            "psych_fit_by_project": dict(self.psych_fit_by_project),
            "data_points": self.data_points
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Candidate":
        """Create from dictionary."""
        d = normalize_keys(data)
        if "id" in d and "candidate_id" not in d:
            d["candidate_id"] = d.pop("id")
        return cls(**d)


@dataclass(frozen=True)
class MatchResult:
    """
    One assignment emitted by the stable matching solver.

    Attributes:
        candidate_id: Assigned candidate
        project_id: Project the candidate is assigned to
        match_score: Compatibility of the pair (0 ... 1)
        breakdown: Optional named score components
    """
    candidate_id: str
    project_id: str
    match_score: float
    breakdown: Optional[Tuple[Tuple[str, float], ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "candidate_id": self.candidate_id,
            "project_id": self.project_id,
            "match_score": self.match_score
        }
        if self.breakdown:
            result["breakdown"] = dict(self.breakdown)
        return result


@dataclass(frozen=True)
class BlockingPair:
    """A candidate and project that both prefer each other over their assignment."""
    candidate_id: str
    project_id: str

    def as_tuple(self) -> Tuple[str, str]:
        return (self.candidate_id, self.project_id)

    def to_dict(self) -> Dict[str, str]:
        return {"candidate_id": self.candidate_id, "project_id": self.project_id}


@dataclass
class CompatibilityResult:
    """
    Result of compatibility scoring.

    Attributes:
        score: Composite compatibility score [0, 1]
        vision_alignment: Vision alignment component [0, 1]
        complementarity: Skill complementarity component [0, 1]
        trust_score: Trust component (0, 1)
        psych_fit: Psychological fit component [0, 1]
        strategy: Cold-start strategy tag used for weighting
        explanation: Human-readable strategy explanation
        weights_used: Stage weights applied to the personalized score
    """
    score: float
    vision_alignment: float
    complementarity: float
    trust_score: float
    psych_fit: float
    strategy: Optional[str] = None
    explanation: Optional[str] = None
    weights_used: Optional[Dict[str, float]] = None

    def components(self) -> Tuple[Tuple[str, float], ...]:
        """Named components, in a fixed order."""
        return (
            ("vision_alignment", self.vision_alignment),
            ("complementarity", self.complementarity),
            ("trust_score", self.trust_score),
            ("psych_fit", self.psych_fit),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "score": self.score,
            "vision_alignment": self.vision_alignment,
            "complementarity": self.complementarity,
            "trust_score": self.trust_score,
            "psych_fit": self.psych_fit
        }
        if self.strategy:
            result["strategy"] = self.strategy
            result["explanation"] = self.explanation
        if self.weights_used:
            result["weights_used"] = self.weights_used
        return result
