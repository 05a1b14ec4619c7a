from .access import (
    ISSUE,
    PROJECT,
    RFI,
    SUBMITTAL,
    AccessDecision,
    AccessLevel,
    AccessRequest,
    AccessService,
    EffectiveAccess,
    Predicate,
    ScopeResolver,
    TargetResource,
    compile_filter,
    create_access_service,
)
from .config import LogLevel, ScopeGateConfig, build_engine, load_config_from_env
from .exceptions import (
    AccessDeniedError,
    ConfigurationError,
    ConflictError,
    InvalidScopeError,
    NotFoundError,
    ScopeGateError,
    ValidationError,
)
from .hierarchy import HierarchyIndex, InMemoryHierarchyIndex, SqlHierarchyIndex
from .logging import (
    AccessLogFormatter,
    AccessLoggerAdapter,
    get_access_logger,
    safe_preview,
    setup_logging,
)
from .models import (
    Assignment,
    AssignmentFilters,
    AssignmentPage,
    AssignmentUpdate,
    ContextTier,
    Principal,
    Role,
    ValidityWindow,
)
from .store import AssignmentStore, InMemoryAssignmentStore, SqlAssignmentStore

__all__ = [
    'AccessDecision',
    'AccessDeniedError',
    'AccessLevel',
    'AccessLogFormatter',
    'AccessLoggerAdapter',
    'AccessRequest',
    'AccessService',
    'Assignment',
    'AssignmentFilters',
    'AssignmentPage',
    'AssignmentStore',
    'AssignmentUpdate',
    'ConfigurationError',
    'ConflictError',
    'ContextTier',
    'EffectiveAccess',
    'HierarchyIndex',
    'InMemoryAssignmentStore',
    'InMemoryHierarchyIndex',
    'InvalidScopeError',
    'ISSUE',
    'LogLevel',
    'NotFoundError',
    'PROJECT',
    'Predicate',
    'Principal',
    'RFI',
    'Role',
    'SUBMITTAL',
    'ScopeGateConfig',
    'ScopeGateError',
    'ScopeResolver',
    'SqlAssignmentStore',
    'SqlHierarchyIndex',
    'TargetResource',
    'ValidationError',
    'ValidityWindow',
    'build_engine',
    'compile_filter',
    'create_access_service',
    'get_access_logger',
    'load_config_from_env',
    'safe_preview',
    'setup_logging',
]
