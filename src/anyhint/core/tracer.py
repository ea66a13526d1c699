"""
Annotation Trace Logger.

This module records the step-by-step execution of one annotation invocation.
It captures:
1. Lifecycle Phases (Discovery, Synthesis, Mutation).
2. Candidates (a target or function selected for annotation).
3. Synthesized and applied text edits.
4. Skips (a target abandoned because its type or layout is unsupported).

The output is a structured list of Event Log dictionaries suitable for JSON
serialization. A tracer lives inside one `AnnotationContext` and is discarded
with it.
"""

import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TraceEventType(str, Enum):
  PHASE_START = "phase_start"
  PHASE_END = "phase_end"
  CANDIDATE = "candidate"
  ANNOTATION = "annotation"
  TEXT_EDIT = "text_edit"
  IMPORT_ACTION = "import_action"
  SKIP = "skip"
  INSPECTION = "inspection"


@dataclass
class TraceEvent:
  id: str
  type: TraceEventType
  timestamp: float
  description: str
  parent_id: Optional[str] = None
  metadata: Dict[str, Any] = field(default_factory=dict)


class TraceLogger:
  """
  Records annotation events for reporting (``--json-trace``).
  """

  def __init__(self):
    self._events: List[TraceEvent] = []
    self._active_phases: List[str] = []  # Stack of phase IDs

  @property
  def events(self) -> List[TraceEvent]:
    return list(self._events)

  def start_phase(self, name: str, description: str = "") -> str:
    """Starts a nested phase (e.g., 'Discovery'). Returns Phase ID."""
    phase_id = str(uuid.uuid4())
    parent = self._active_phases[-1] if self._active_phases else None

    event = TraceEvent(
      id=phase_id,
      type=TraceEventType.PHASE_START,
      timestamp=time.time(),
      description=name,
      parent_id=parent,
      metadata={"detail": description},
    )
    self._events.append(event)
    self._active_phases.append(phase_id)
    return phase_id

  def end_phase(self):
    """Ends the current active phase."""
    if not self._active_phases:
      return

    phase_id = self._active_phases.pop()
    event = TraceEvent(
      id=str(uuid.uuid4()),
      type=TraceEventType.PHASE_END,
      timestamp=time.time(),
      description="End Phase",
      parent_id=phase_id,
    )
    self._events.append(event)

  def log_candidate(self, kind: str, label: str, line: int):
    """Logs a target or function selected for annotation."""
    self._log_simple(TraceEventType.CANDIDATE, f"Found {kind} '{label}'", {"kind": kind, "label": label, "line": line})

  def log_annotation(self, label: str, text: str, syntax: str):
    """Logs a synthesized annotation."""
    self._log_simple(TraceEventType.ANNOTATION, f"Annotate '{label}'", {"annotation": text, "syntax": syntax})

  def log_edit(self, start: int, end: int, text: str, description: str = ""):
    """Logs a text edit committed to the buffer."""
    self._log_simple(
      TraceEventType.TEXT_EDIT,
      f"Edit [{start}, {end})",
      {"start": start, "end": end, "text": text, "detail": description},
    )

  def log_import(self, statement: str):
    self._log_simple(TraceEventType.IMPORT_ACTION, f"Inject '{statement}'", {"statement": statement})

  def log_skip(self, subject: str, reason: str):
    """Logs a target that was abandoned without aborting the invocation."""
    self._log_simple(TraceEventType.SKIP, f"Skipped '{subject}'", {"reason": reason, "level": "warning"})

  def log_inspection(self, node_str: str, outcome: str, detail: str = ""):
    """Logs a decision point where no change occurred."""
    self._log_simple(TraceEventType.INSPECTION, f"Inspecting '{node_str}'", {"outcome": outcome, "detail": detail})

  def _log_simple(self, evt_type: TraceEventType, desc: str, meta: Dict[str, Any]):
    parent = self._active_phases[-1] if self._active_phases else None
    self._events.append(
      TraceEvent(
        id=str(uuid.uuid4()), type=evt_type, timestamp=time.time(), description=desc, parent_id=parent, metadata=meta
      )
    )

  def export(self) -> List[Dict[str, Any]]:
    """Returns list of dicts for JSON serialization."""
    return [asdict(e) for e in self._events]
