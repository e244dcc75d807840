"""
Identity reconciliation - matches extracted roster names to reference agents.

Matching Strategy (first unambiguous hit wins):
1. Exact cedula match against active agents
2. Exact alias match (case-insensitive)
3. Name containment in either direction, single agent only
4. Token score: tokens found inside the full name, best >= 2 and strictly ahead of the runner-up
5. Unique surname: exactly one full name contains the last token (longer than 3 chars)

Lookups are cached per (name, cedula) for the lifetime of one matcher, so a
roster with seven records per person costs one lookup per person.
"""
import logging
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .schemas import UNKNOWN_CEDULA, AnalysisMetadata, MatchStats, ShiftRecord

logger = logging.getLogger("roster_extraction.matcher")

MIN_TOKEN_LENGTH = 3
MIN_TOKEN_SCORE = 2
MIN_SURNAME_LENGTH = 4

METHOD_CEDULA = "cedula"
METHOD_ALIAS = "alias"
METHOD_CONTAINMENT = "containment"
METHOD_TOKENS = "token_score"
METHOD_SURNAME = "surname"


def normalize_name(value: Optional[str]) -> str:
    """Uppercase, strip accents and collapse whitespace for comparisons."""
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", str(value))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^A-Za-z0-9 ]+", " ", text)
    return re.sub(r"\s+", " ", text).strip().upper()


def name_tokens(value: Optional[str]) -> List[str]:
    return [token for token in normalize_name(value).split(" ") if len(token) >= MIN_TOKEN_LENGTH]


def _unique(agents: Iterable[Any]) -> List[Any]:
    seen = {}
    for agent in agents:
        seen.setdefault(agent.id, agent)
    return list(seen.values())


class RosterMatcher:
    """Resolves extracted names against the reference roster through an agent repository."""

    def __init__(self, agent_repo):
        self.agent_repo = agent_repo
        self._cache: Dict[Tuple[str, str], Tuple[Optional[Any], Optional[str]]] = {}
        self._active_agents: Optional[List[Any]] = None

    def _get_active_agents(self) -> List[Any]:
        if self._active_agents is None:
            self._active_agents = list(self.agent_repo.get_active_agents())
        return self._active_agents

    def _by_containment(self, name: str) -> Optional[Any]:
        normalized = normalize_name(name)
        if len(normalized) < MIN_TOKEN_LENGTH:
            return None

        candidates = [
            agent for agent in self.agent_repo.search_by_name(name)
            if getattr(agent, "is_active", True)
        ]
        for agent in self._get_active_agents():
            full_name = normalize_name(agent.full_name)
            if full_name and (normalized in full_name or full_name in normalized):
                candidates.append(agent)

        candidates = _unique(candidates)
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            logger.info("Ambiguous containment match for %s (%d candidates)", name, len(candidates))
        return None

    def _by_token_score(self, name: str) -> Optional[Any]:
        tokens = set(name_tokens(name))
        if not tokens:
            return None

        scored = []
        for agent in self._get_active_agents():
            full_name = normalize_name(agent.full_name)
            score = sum(1 for token in tokens if token in full_name)
            if score:
                scored.append((score, agent))
        if not scored:
            return None

        scored.sort(key=lambda item: item[0], reverse=True)
        best_score, best_agent = scored[0]
        if best_score < MIN_TOKEN_SCORE:
            return None
        if len(scored) > 1 and scored[1][0] >= best_score:
            logger.info("Ambiguous token match for %s (score %d tie)", name, best_score)
            return None
        return best_agent

    def _by_surname(self, name: str) -> Optional[Any]:
        tokens = name_tokens(name)
        surname = tokens[-1] if tokens else ""
        if len(surname) < MIN_SURNAME_LENGTH:
            return None

        candidates = [
            agent for agent in self._get_active_agents()
            if surname in normalize_name(agent.full_name)
        ]
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            logger.info("Ambiguous surname match for %s (%d candidates)", name, len(candidates))
        return None

    def find_agent(self, name: str, cedula: Optional[str] = None) -> Tuple[Optional[Any], Optional[str]]:
        """
        Resolve one extracted identity.

        Returns:
            (agent, method) or (None, None) when nothing matches unambiguously.

        Raises:
            SQLAlchemyError: when the roster store cannot be queried
        """
        key = ((name or "").strip().lower(), (cedula or UNKNOWN_CEDULA).strip())
        if key in self._cache:
            return self._cache[key]

        result: Tuple[Optional[Any], Optional[str]] = (None, None)
        if cedula and cedula != UNKNOWN_CEDULA:
            agent = self.agent_repo.get_by_cedula(cedula)
            if agent is not None and getattr(agent, "is_active", True):
                result = (agent, METHOD_CEDULA)

        if result[0] is None and name:
            agent = self.agent_repo.get_by_alias(name)
            if agent is not None and getattr(agent, "is_active", True):
                result = (agent, METHOD_ALIAS)

        if result[0] is None and name:
            for method, finder in (
                (METHOD_CONTAINMENT, self._by_containment),
                (METHOD_TOKENS, self._by_token_score),
                (METHOD_SURNAME, self._by_surname),
            ):
                agent = finder(name)
                if agent is not None:
                    result = (agent, method)
                    break

        if result[0] is None:
            logger.info("No roster match for %s (cedula=%s)", name, cedula)
        else:
            logger.debug("Matched %s -> %s via %s", name, result[0].cedula, result[1])

        self._cache[key] = result
        return result

    def reconcile(self, records: List[ShiftRecord], metadata: Optional[AnalysisMetadata] = None) -> MatchStats:
        """Enrich records in place from the roster and return the match statistics."""
        total = len(records)
        if self.agent_repo is None:
            logger.warning("Reference roster not configured; %d records left unmatched", total)
            return MatchStats(total=total, matched=0, unmatched=total, roster_available=False)

        try:
            resolved = [self.find_agent(record.person_name, record.person_cedula)[0] for record in records]
        except SQLAlchemyError:
            logger.exception("Reference roster unavailable; skipping identity reconciliation")
            # Leave the session usable for the image uploads that follow.
            rollback = getattr(self.agent_repo, "rollback", None)
            if rollback is not None:
                rollback()
            return MatchStats(total=total, matched=0, unmatched=total, roster_available=False)

        matched = 0
        matched_agents = {}
        for record, agent in zip(records, resolved):
            if agent is None:
                continue
            matched += 1
            apply_agent(record, agent)
            matched_agents.setdefault(agent.id, set()).add(record.original_name_as_extracted or record.person_name)
            if metadata is not None and not metadata.supervisor and getattr(agent, "supervisor", None):
                metadata.supervisor = agent.supervisor

        for agent_id, names in matched_agents.items():
            if len(names) > 1:
                logger.warning("Several extracted names resolved to agent %s: %s", agent_id, sorted(names))

        return MatchStats(total=total, matched=matched, unmatched=total - matched, roster_available=True)


def apply_agent(record: ShiftRecord, agent: Any) -> None:
    if not record.original_name_as_extracted:
        record.original_name_as_extracted = record.person_name
    record.person_cedula = agent.cedula
    record.person_name = agent.full_name.upper()
    if not record.contract_code and getattr(agent, "contract", None):
        record.contract_code = agent.contract
    if not record.campaign_code and getattr(agent, "campaign", None):
        record.campaign_code = agent.campaign
    record.matched_from_reference = True


def reconcile_records(records: List[ShiftRecord], agent_repo, metadata: Optional[AnalysisMetadata] = None) -> MatchStats:
    return RosterMatcher(agent_repo).reconcile(records, metadata)
