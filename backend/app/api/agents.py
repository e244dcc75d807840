import logging
import traceback
from flask import Blueprint, request
from ..repositories.agent_repository import AgentRepository
from ..services.alias_service import generate_default_aliases
from .utils import api_response, model_to_dict, models_to_list

logger = logging.getLogger(__name__)

agents_bp = Blueprint('agents', __name__, url_prefix='/api/agents')
repo = AgentRepository()

REQUIRED_FIELDS = ('cedula', 'full_name', 'campaign', 'supervisor')
EDITABLE_FIELDS = {'cedula', 'full_name', 'campaign', 'supervisor', 'contract', 'is_active'}


def _clean_fields(data):
    cleaned = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    if cleaned.get('full_name'):
        cleaned['full_name'] = ' '.join(cleaned['full_name'].split()).upper()
    return cleaned


@agents_bp.route('', methods=['GET'])
def get_agents():
    """List reference agents, optionally filtered by campaign."""
    try:
        campaign = request.args.get('campaign')
        include_inactive = request.args.get('include_inactive', 'false').lower() == 'true'
        agents = repo.get_by_campaign(campaign, active_only=not include_inactive)
        return api_response(data=models_to_list(agents))
    except Exception as e:
        logger.exception("Failed to get agents")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to get agents", error=str(e))


@agents_bp.route('', methods=['POST'])
def create_agent():
    """Create a reference agent and its default name aliases."""
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    fields = _clean_fields(data)
    missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
    if missing:
        return api_response(
            status_code=400,
            message=f"Missing required fields: {', '.join(missing)}",
            error="Bad Request",
        )

    try:
        if repo.get_by_cedula(fields['cedula']):
            return api_response(status_code=409, message="Agent with this cedula already exists", error="Conflict")

        fields.setdefault('is_active', True)
        agent = repo.create_with_aliases(generate_default_aliases(fields['full_name']), **fields)
        payload = model_to_dict(agent)
        payload['aliases'] = [alias.alias for alias in agent.aliases]
        return api_response(data=payload, message="Agent created successfully", status_code=201)
    except Exception as e:
        logger.exception("Failed to create agent")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to create agent", error=str(e))


@agents_bp.route('/<uuid:agent_id>', methods=['PUT'])
def update_agent(agent_id):
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    agent = repo.get_by_id(agent_id)
    if not agent:
        return api_response(status_code=404, message="Agent not found", error="Not Found")

    fields = _clean_fields(data)
    for name in REQUIRED_FIELDS:
        if name in fields and not fields[name]:
            return api_response(status_code=400, message=f"{name} cannot be empty", error="Bad Request")

    try:
        if fields.get('cedula') and fields['cedula'] != agent.cedula:
            existing = repo.get_by_cedula(fields['cedula'])
            if existing and existing.id != agent.id:
                return api_response(status_code=409, message="Agent with this cedula already exists", error="Conflict")

        updated = repo.update(agent_id, **fields)
        return api_response(data=model_to_dict(updated), message="Agent updated successfully")
    except Exception as e:
        logger.exception("Failed to update agent %s", agent_id)
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to update agent", error=str(e))


@agents_bp.route('/<uuid:agent_id>', methods=['DELETE'])
def delete_agent(agent_id):
    """Soft delete: the agent is deactivated and stops matching."""
    try:
        agent = repo.deactivate(agent_id)
        if not agent:
            return api_response(status_code=404, message="Agent not found", error="Not Found")
        return api_response(message="Agent deactivated successfully")
    except Exception as e:
        logger.exception("Failed to deactivate agent %s", agent_id)
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to deactivate agent", error=str(e))


@agents_bp.route('/<uuid:agent_id>/aliases', methods=['GET'])
def get_agent_aliases(agent_id):
    if not repo.get_by_id(agent_id):
        return api_response(status_code=404, message="Agent not found", error="Not Found")
    return api_response(data=models_to_list(repo.get_aliases(agent_id)))


@agents_bp.route('/<uuid:agent_id>/aliases', methods=['POST'])
def add_agent_alias(agent_id):
    data = request.get_json(silent=True) or {}
    alias = (data.get('alias') or '').strip()
    if not alias:
        return api_response(status_code=400, message="Alias is required", error="Bad Request")

    if not repo.get_by_id(agent_id):
        return api_response(status_code=404, message="Agent not found", error="Not Found")

    try:
        created = repo.add_alias(agent_id, alias)
        if created is None:
            return api_response(status_code=409, message="Alias already exists for this agent", error="Conflict")
        return api_response(data=model_to_dict(created), message="Alias added successfully", status_code=201)
    except Exception as e:
        logger.exception("Failed to add alias for agent %s", agent_id)
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to add alias", error=str(e))
