from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from .base import BaseRepository
from ..models.roster import Agent, AgentAlias
from ..utils import normalize_person_name


class AgentRepository(BaseRepository[Agent]):
    """Repository for the reference roster (agents and their name aliases)."""
    
    def __init__(self):
        super().__init__(Agent)
    
    def get_by_cedula(self, cedula: str) -> Optional[Agent]:
        """
        Get an agent by national ID number (active or not).
        
        Args:
            cedula: The agent's cedula
            
        Returns:
            Agent instance or None if not found
        """
        if not cedula:
            return None
        return self.session.query(Agent).filter_by(cedula=cedula.strip()).first()
    
    def get_by_alias(self, alias: str) -> Optional[Agent]:
        """
        Get the active agent owning an alias (case- and accent-insensitive).
        
        Args:
            alias: Name variant as written on a roster grid
            
        Returns:
            Agent instance or None if no active agent has that alias
        """
        normalized = normalize_person_name(alias)
        if not normalized:
            return None
        return self.session.query(Agent).join(AgentAlias).filter(
            AgentAlias.alias == normalized,
            Agent.is_active.is_(True)
        ).first()
    
    def search_by_name(self, name: str, active_only: bool = True) -> List[Agent]:
        """
        Search agents whose full name contains the given text (case-insensitive).
        
        Args:
            name: The name or partial name to search for
            active_only: Restrict to active agents
            
        Returns:
            List of matching Agent instances
        """
        if not name or not name.strip():
            return []
        query = self.session.query(Agent).filter(
            func.lower(Agent.full_name).contains(name.strip().lower())
        )
        if active_only:
            query = query.filter(Agent.is_active.is_(True))
        return query.order_by(Agent.full_name).all()
    
    def get_active_agents(self) -> List[Agent]:
        return self.session.query(Agent).filter_by(is_active=True).order_by(Agent.full_name).all()
    
    def get_by_campaign(self, campaign: Optional[str] = None, active_only: bool = True) -> List[Agent]:
        """
        List agents, optionally filtered by campaign, sorted by name.
        """
        query = self.session.query(Agent)
        if campaign:
            query = query.filter(func.upper(Agent.campaign) == campaign.strip().upper())
        if active_only:
            query = query.filter(Agent.is_active.is_(True))
        return query.order_by(Agent.full_name).all()
    
    def create_with_aliases(self, aliases: Iterable[str], **fields) -> Agent:
        """
        Create an agent together with its initial aliases in one transaction.
        
        Raises:
            SQLAlchemyError: If database operation fails
        """
        agent = Agent(**fields)
        seen = set()
        for alias in aliases:
            normalized = normalize_person_name(alias)
            if normalized and normalized not in seen:
                seen.add(normalized)
                agent.aliases.append(AgentAlias(alias=normalized))
        self.session.add(agent)
        self.commit()
        return agent
    
    def get_aliases(self, agent_id: UUID) -> List[AgentAlias]:
        return self.session.query(AgentAlias).filter_by(agent_id=agent_id).order_by(AgentAlias.alias).all()
    
    def add_alias(self, agent_id: UUID, alias: str) -> Optional[AgentAlias]:
        """
        Attach a name alias to an agent.
        
        Returns:
            The created AgentAlias, or None if the agent already has it
            
        Raises:
            ValueError: If the alias is blank
            SQLAlchemyError: If database operation fails
        """
        normalized = normalize_person_name(alias)
        if not normalized:
            raise ValueError("Alias must not be empty")
        
        existing = self.session.query(AgentAlias).filter_by(agent_id=agent_id, alias=normalized).first()
        if existing:
            return None
        
        instance = AgentAlias(agent_id=agent_id, alias=normalized)
        self.session.add(instance)
        try:
            self.commit()
        except IntegrityError:
            return None
        return instance
    
    def deactivate(self, agent_id: UUID) -> Optional[Agent]:
        """Soft delete: the agent stays in the table but no longer matches."""
        return self.update(agent_id, is_active=False)
