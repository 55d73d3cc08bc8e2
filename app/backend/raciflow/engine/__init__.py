"""RACI matrix assignment and approval engine.

Pure functions over plain data; persistence and directory lookups happen in
the service layer.
"""

from raciflow.engine.aggregator import (
    CellApproval,
    MatrixView,
    aggregate_event_status,
    build_matrix_view,
    group_by_event,
    group_by_task,
    matrix_from_records,
    rejection_reason,
)
from raciflow.engine.approvals import apply_decision, parse_decision
from raciflow.engine.builder import (
    build_matrix,
    candidate_from_payload,
    candidate_from_rows,
    candidate_from_selections,
    load_matrix,
    matrix_to_payload,
    resolve_employee_pool,
)
from raciflow.engine.limits import (
    decode_limit_payload,
    decode_limits,
    encode_limits,
    format_limit_key,
    parse_limit_key,
)
from raciflow.engine.submission import flatten_matrix, resolve_approvers, submit_matrix
from raciflow.engine.validator import ValidationResult, normalize_assignments, validate_matrix

__all__ = [
    "CellApproval",
    "MatrixView",
    "ValidationResult",
    "aggregate_event_status",
    "apply_decision",
    "build_matrix",
    "build_matrix_view",
    "candidate_from_payload",
    "candidate_from_rows",
    "candidate_from_selections",
    "decode_limit_payload",
    "decode_limits",
    "encode_limits",
    "flatten_matrix",
    "format_limit_key",
    "group_by_event",
    "group_by_task",
    "load_matrix",
    "matrix_from_records",
    "matrix_to_payload",
    "normalize_assignments",
    "parse_decision",
    "parse_limit_key",
    "rejection_reason",
    "resolve_approvers",
    "resolve_employee_pool",
    "submit_matrix",
    "validate_matrix",
]
