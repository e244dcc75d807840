"""
Roster extraction orchestrator - photo(s) of a weekly shift grid in, normalized
and reconciled shift records out.

Pipeline:
1. Build the grid-interpretation instructions and the multi-image user message
2. One vision model call (no retries, bounded by a timeout)
3. Parse / recover the JSON response
4. Validate and normalize records, complete every person's week
5. Reconcile identities against the reference roster
"""
import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..observability import extraction_metrics
from .images import PreparedImage
from .matcher import RosterMatcher
from .response_parser import parse_extraction_response
from .schemas import AnalysisResult
from .shift_normalizer import normalize_agents, normalize_metadata, normalize_shifts

logger = logging.getLogger("roster_extraction.extractor")

PIPELINE_VERSION = "1.0.0"

SPANISH_MONTHS = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)

SYSTEM_PROMPT_TEMPLATE = """You read photographs of weekly shift rosters ("maya horaria" / "malla de turnos") \
from Colombian call centers and transcribe EVERY scheduled shift with maximum precision.

Today is {today} ({month_name} {year}). Campaign ("CUENTA") names look like CORFICOLOMBIANA, AVC, AVC-ATH.
Several images may be sent; each one may belong to a different campaign.

DATES
- The day columns are headed by day-of-month numbers with a weekday letter below:
  L=Lunes, M=Martes, M=Miércoles, J=Jueves, V=Viernes, S=Sábado, D=Domingo.
- Read the real numbers (e.g. 16..22, or 23..28 then 1 when the week crosses a month).
- When month/year are not printed, pick the month closest to today in which those numbers
  fall on those weekdays. Never invent dates. Output full dates as YYYY-MM-DD.

GRID LAYOUT
The grid has up to two sections. Left-hand base columns: CUENTA, TAREAS ASIGNADAS, Agente,
Ingreso (start), Salida (end), Almuerzo (lunch range), Break Mañana / Break Tarde (ignore breaks).
Right-hand day columns sit under "Horario Provisional".

Section 1, regular shifts: each row is a schedule profile.
- A name in a weekday column (L..V) means that person works that day with the row's base
  Ingreso/Salida/Almuerzo. A name visually spanning L..V means every weekday.
- A time range in a day column ("6:00 AM - 2:00PM") overrides the base times for that day only.
  This mostly happens on S and D; such weekend shifts are normal shifts without lunch.
- An empty S/D cell, or the word "Descanso", is a rest day.

Section 2, "TURNO PARTIDO" (split shifts), when present:
- Two blocks: Turno Mañana (first block) and Turno Tarde/Noche (second block).
- A name in a day column means a split shift with both base blocks that day.
- A modified range in a day column replaces only the afternoon block; it is still split.
- A continuous range on S/D ("2:00 PM - 10:00 PM") is a normal, non-split shift without lunch.

ABSENCES
- Cell text that is neither a name nor a time range ("Incapacidad", "Vacaciones", "Licencia",
  "Permiso", ...) is an absence: esIncapacidad=true, motivoAusencia=<exact text>,
  esDescanso=false, no times, no lunch, jornada=<text in uppercase>.
- A person missing from every section on a given day rests that day.
- Support notes in the Agente column ("Apoyo línea Eliana 7:00 am - 9:00am") are not agents.

OUTPUT
Reply with ONE JSON object only: no markdown, no backticks, no prose.
{{
  "metadata": {{
    "supervisor": "leader name or null",
    "campanas": ["campaigns found"],
    "semana": "del X al Y de <mes>",
    "fechaInicio": "YYYY-MM-DD",
    "fechaFin": "YYYY-MM-DD",
    "diasDetectados": [16, 17, 18, 19, 20, 21, 22]
  }},
  "agentes": [
    {{"nombre": "FULL NAME IN UPPERCASE", "campana": "campaign", "tareaAsignada": "task or null"}}
  ],
  "turnos": [
    {{
      "cedula": "???",
      "nombre": "AGENT NAME",
      "fecha": "YYYY-MM-DD",
      "diaSemana": "Lunes",
      "horaInicio": "06:00",
      "horaFin": "10:00",
      "esDescanso": false,
      "esIncapacidad": false,
      "motivoAusencia": null,
      "esSplit": true,
      "splitHoraInicio2": "17:00",
      "splitHoraFin2": "22:00",
      "almuerzo": null,
      "campana": "CORFICOLOMBIANA",
      "jornada": "06:00-10:00 // 17:00-22:00"
    }}
  ]
}}

RULES
1. Times in 24h HH:MM ("7:00 AM" -> "07:00", "5:18 PM" -> "17:18").
2. Rest day: esDescanso=true, esIncapacidad=false, motivoAusencia=null, no times, jornada="DESCANSO".
3. Split shift: esSplit=true, first block in horaInicio/horaFin, second block in
   splitHoraInicio2/splitHoraFin2, almuerzo=null.
4. Normal shift: esSplit=false, almuerzo as "HH:MM - HH:MM" in 24h, or null on short weekend shifts.
5. EVERY agent gets EXACTLY 7 records, one per detected date.
6. Unreadable values are "???". Names in UPPERCASE. cedula is always "???" (filled in later).
7. A person assigned to a regular profile works L..V with its base times unless the grid says otherwise.
"""

USER_TASK_TEMPLATE = """Analyze {subject} of a weekly shift roster. Extract every scheduled shift for EVERY agent and EVERY visible day.

TODAY: {today}
{multi_image_note}
STEP BY STEP:
1. Read the day-of-month numbers and weekday letters of the day columns: that is the date range.
2. Build full YYYY-MM-DD dates from those numbers and {month_name} {year} (or the nearest matching month).
3. Identify every campaign (CUENTA) visible.
4. Read the regular section row by row: base Ingreso/Salida/Almuerzo, then which agent uses that profile on which days.
   Watch for absence texts such as "Incapacidad" in day cells.
5. Read the TURNO PARTIDO section if present: morning block, afternoon block, modified afternoon ranges,
   continuous S/D shifts.
6. Emit exactly 7 records per agent.

Do not mark L..V as rest for an agent assigned to a regular profile unless the image explicitly says so.
Reply with the JSON object only."""

MULTI_IMAGE_NOTE = (
    "Each image may hold a different campaign: extract agents and shifts from ALL images "
    "and merge them into one result.\n"
)


def build_system_prompt(today: date) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        today=today.isoformat(),
        month_name=SPANISH_MONTHS[today.month - 1],
        year=today.year,
    )


def build_user_content(images: Sequence[PreparedImage], today: date) -> List[Dict[str, Any]]:
    """Each image followed by its label, then the step-by-step task text."""
    content: List[Dict[str, Any]] = []
    for index, image in enumerate(images, start=1):
        content.append({
            "type": "image_url",
            "image_url": {"url": image.data_url, "detail": "high"},
        })
        label = f"[Image {index}" + (f" - {image.label}" if image.label else "") + "]"
        content.append({"type": "text", "text": label})

    content.append({
        "type": "text",
        "text": USER_TASK_TEMPLATE.format(
            subject="ALL of these images" if len(images) > 1 else "this image",
            today=today.isoformat(),
            multi_image_note=MULTI_IMAGE_NOTE if len(images) > 1 else "",
            month_name=SPANISH_MONTHS[today.month - 1],
            year=today.year,
        ),
    })
    return content


def build_messages(images: Sequence[PreparedImage], today: date) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": build_system_prompt(today)},
        {"role": "user", "content": build_user_content(images, today)},
    ]


async def analyze_schedule_images(
    images: Sequence[PreparedImage],
    *,
    vision_client,
    agent_repo=None,
    today: Optional[date] = None,
) -> AnalysisResult:
    """
    Run the whole extraction pipeline for one roster upload.

    Args:
        images: prepared roster photos, in upload order
        vision_client: object with an async ``complete(messages)`` returning a VisionResponse
        agent_repo: reference roster repository, or None to skip reconciliation
        today: reference date for month/year inference (defaults to the current date)

    Raises:
        ValueError: if no images are given
        UpstreamUnavailableError: model call failed or timed out
        MalformedResponseError: model output could not be interpreted
    """
    if not images:
        raise ValueError("At least one image is required")

    today = today or date.today()
    started_at = time.perf_counter()
    logger.info("Analyzing %d roster image(s) (pipeline %s)", len(images), PIPELINE_VERSION)

    try:
        response = await vision_client.complete(build_messages(images, today))
        parsed = parse_extraction_response(response.text)
    except Exception as err:
        extraction_metrics.increment_outcome(type(err).__name__)
        raise

    metadata = normalize_metadata(parsed.metadata)
    agents = normalize_agents(parsed.agents)
    outcome = normalize_shifts(parsed.records, metadata)

    match_stats = RosterMatcher(agent_repo).reconcile(outcome.records, outcome.metadata)

    duration_s = time.perf_counter() - started_at
    match_rate = (match_stats.matched / match_stats.total) if match_stats.total else 0.0
    diagnostics: Dict[str, Any] = {
        "pipeline_version": PIPELINE_VERSION,
        "model": response.model,
        "finish_reason": response.finish_reason,
        "recovered_truncated_json": parsed.recovered,
        "raw_records": len(parsed.records),
        "records": len(outcome.records),
        "match_rate": round(match_rate, 3),
        "model_latency_s": round(response.duration_s, 2),
        "total_latency_s": round(duration_s, 2),
    }
    diagnostics.update(outcome.diagnostics())

    extraction_metrics.observe_analysis(
        duration_s=duration_s,
        records=len(outcome.records),
        dropped=outcome.dropped_records,
        matched=match_stats.matched,
        unmatched=match_stats.unmatched,
    )
    extraction_metrics.increment_outcome("recovered" if parsed.recovered else "ok")

    logger.info(
        "Roster analysis finished in %.2fs: %d agents, %d records (%d dropped, %d inferred), matched %d/%d",
        duration_s,
        len(agents),
        len(outcome.records),
        outcome.dropped_records,
        outcome.inferred_rest_days,
        match_stats.matched,
        match_stats.total,
    )

    return AnalysisResult(
        metadata=outcome.metadata,
        agents=agents,
        records=outcome.records,
        match_stats=match_stats,
        diagnostics=diagnostics,
    )
