"""Rule-based requirement analysis used when Perplexity is unavailable.

Everything here is a pure function of the input text: no I/O, no shared
state. The same text always yields the same score, issues and rewrites
(only `analyzedAt` changes between calls), so the engine is safe to call
from concurrent requests and its output is reproducible in tests.
"""
from __future__ import annotations
import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from .schemas import AnalysisResult, EnhancementCandidate, EnhancementResult, QualityIssue

logger = logging.getLogger(__name__)


AMBIGUOUS_TERMS: Tuple[str, ...] = (
	"user-friendly", "fast", "efficient", "good", "bad", "easy", "simple", "reasonable", "appropriate",
)
WEAK_MODALS: Tuple[str, ...] = ("should", "may", "might", "could", "would")
UNIT_WORDS: Tuple[str, ...] = ("second", "minute", "percent", "%")
PASSIVE_MARKERS: Tuple[str, ...] = (" be ", " been ", " being ")

# Shorter texts are too small to demand a metric
MEASURABLE_MIN_LENGTH = 20

BASE_SCORE = 75
MIN_SCORE = 20
MAX_SCORE = 100

_DIGIT_RE = re.compile(r"\d")


class SignalKind(str, enum.Enum):
	AMBIGUOUS_TERM = "AmbiguousTerm"
	WEAK_MODAL = "WeakModal"
	MISSING_MEASURABLE_CRITERION = "MissingMeasurableCriterion"
	PASSIVE_VOICE = "PassiveVoice"


@dataclass(frozen=True)
class Signal:
	kind: SignalKind
	matched_span: str


@dataclass(frozen=True)
class IssueRule:
	type: str
	severity: str
	description: str
	suggestion: str
	penalty: int
	# Used instead of the matched span when the signal has no lexical match
	problematic_text: Optional[str] = None


# Table order is the order issues are reported in
ISSUE_RULES = {
	SignalKind.AMBIGUOUS_TERM: IssueRule(
		type="ambiguity",
		severity="major",
		description="Contains ambiguous terms that are not measurable: {matches}",
		suggestion="Replace with specific, measurable criteria (e.g., response time < 2 seconds, 95% user success rate)",
		penalty=15,
	),
	SignalKind.WEAK_MODAL: IssueRule(
		type="completeness",
		severity="minor",
		description="Uses weak modal verbs instead of definitive requirements language: {matches}",
		suggestion="Use definitive language: 'shall', 'must', or 'will' for mandatory requirements",
		penalty=10,
	),
	SignalKind.MISSING_MEASURABLE_CRITERION: IssueRule(
		type="verifiability",
		severity="major",
		description="Lacks quantifiable, measurable criteria for verification",
		suggestion="Add specific metrics: timeframes, percentages, counts, or size limits that can be objectively measured",
		penalty=20,
		problematic_text="entire requirement",
	),
	SignalKind.PASSIVE_VOICE: IssueRule(
		type="consistency",
		severity="minor",
		description="May contain passive voice constructions",
		suggestion="Use active voice: specify who performs the action",
		penalty=5,
		problematic_text="passive voice phrases",
	),
}


def _find_terms(lowered: str, vocabulary: Iterable[str]) -> List[str]:
	# Vocabulary order, not text order; plain substring test
	return [term for term in vocabulary if term in lowered]


def detect_signals(text: str) -> Tuple[Signal, ...]:
	"""Scan requirement text for the four lexical quality signals.

	Every check runs on every call; at most one signal per kind is returned,
	in rule order.
	"""
	lowered = text.lower()
	signals: List[Signal] = []

	ambiguous = _find_terms(lowered, AMBIGUOUS_TERMS)
	if ambiguous:
		signals.append(Signal(SignalKind.AMBIGUOUS_TERM, ", ".join(ambiguous)))

	weak = _find_terms(lowered, WEAK_MODALS)
	if weak:
		signals.append(Signal(SignalKind.WEAK_MODAL, ", ".join(weak)))

	has_numbers = _DIGIT_RE.search(text) is not None
	has_units = any(unit in lowered for unit in UNIT_WORDS)
	if not has_numbers and not has_units and len(text) > MEASURABLE_MIN_LENGTH:
		signals.append(Signal(SignalKind.MISSING_MEASURABLE_CRITERION, text))

	passive = [marker.strip() for marker in PASSIVE_MARKERS if marker in lowered]
	if passive:
		signals.append(Signal(SignalKind.PASSIVE_VOICE, ", ".join(passive)))

	return tuple(signals)


def _present_kinds(signals: Iterable[Signal]) -> set:
	return {signal.kind for signal in signals}


def score_signals(signals: Iterable[Signal]) -> int:
	kinds = _present_kinds(signals)
	score = BASE_SCORE
	for kind, rule in ISSUE_RULES.items():
		if kind in kinds:
			score -= rule.penalty
	# Unreachable with the current penalties (minimum 25)
	return max(MIN_SCORE, min(MAX_SCORE, score))


def build_issues(signals: Iterable[Signal]) -> List[QualityIssue]:
	by_kind = {}
	for signal in signals:
		by_kind.setdefault(signal.kind, signal)
	issues: List[QualityIssue] = []
	for kind, rule in ISSUE_RULES.items():
		signal = by_kind.get(kind)
		if signal is None:
			continue
		issues.append(
			QualityIssue(
				type=rule.type,
				severity=rule.severity,
				description=rule.description.format(matches=signal.matched_span),
				problematic_text=rule.problematic_text or signal.matched_span,
				suggestion=rule.suggestion,
			)
		)
	return issues


# ---- Rewriting ----

COMPREHENSIVE_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
	("should", "shall"),
	("may", "shall"),
	("might", "shall"),
	("user-friendly", "intuitive with 95% user task completion rate"),
	("fast", "within 2 seconds"),
	("efficient", "with 99% accuracy"),
)
MODERATE_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
	("should", "must"),
	("user-friendly", "accessible to 90% of target users"),
)


def _apply_replacements(text: str, replacements: Sequence[Tuple[str, str]]) -> str:
	# Case-sensitive, applied in order: later rules see earlier output
	for old, new in replacements:
		text = text.replace(old, new)
	return text


def _has_mandatory_verb(text: str) -> bool:
	return "shall" in text or "must" in text


def enhance_text(text: str) -> List[EnhancementCandidate]:
	comprehensive = _apply_replacements(text, COMPREHENSIVE_REPLACEMENTS)
	if not _has_mandatory_verb(comprehensive):
		comprehensive = "The system shall " + text.lower()

	moderate = _apply_replacements(text, MODERATE_REPLACEMENTS)
	if not _has_mandatory_verb(moderate) and not moderate.startswith("The"):
		moderate = "The application must " + text.lower()

	return [
		EnhancementCandidate(
			text=comprehensive,
			changes=[
				"Replaced weak modal verbs with 'shall'",
				"Added specific performance criteria",
				"Converted to active voice",
				"Added measurable success metrics",
			],
			improvements=[
				"Definitive requirement language",
				"Measurable performance criteria",
				"Clear actor identification",
				"Testable success conditions",
			],
			quality_score=85,
			rationale="Enhanced with definitive language, specific metrics, and testable criteria",
		),
		EnhancementCandidate(
			text=moderate,
			changes=[
				"Replaced 'should' with 'must'",
				"Added user accessibility metrics",
				"Improved requirement structure",
			],
			improvements=[
				"Mandatory requirement language",
				"User-focused success criteria",
				"Better requirement formatting",
			],
			quality_score=78,
			rationale="Improved with mandatory language and user-focused metrics",
		),
	]


def utc_timestamp() -> str:
	return datetime.now(timezone.utc).isoformat()


class MockAnalysisEngine:
	"""Deterministic stand-in for the Perplexity analysis and enhancement calls."""

	def analyze(self, text: str) -> AnalysisResult:
		signals = detect_signals(text)
		result = AnalysisResult(
			overall_score=score_signals(signals),
			issues=build_issues(signals),
			analyzed_at=utc_timestamp(),
		)
		logger.info("Mock analysis created: score=%s issues=%s", result.overall_score, len(result.issues))
		return result

	def enhance(self, text: str, issues: Optional[Sequence[QualityIssue]] = None) -> EnhancementResult:
		# issues only shape the real prompt; the rewrite rules are fixed
		result = EnhancementResult(enhancements=enhance_text(text), recommended_index=0)
		logger.info("Mock enhancement created with %s versions", len(result.enhancements))
		return result
