"""carsxe_flow - CarsXE vehicle-data operations for workflow automation."""

from .catalog import (
    Catalog, CatalogVariant, OperationSpec, ParameterBinding,
    Location, Kind, RESOURCES,
)
from .config import Settings
from .credentials import ApiKeyCredentials
from .dispatcher import Dispatcher
from .exceptions import (
    CarsXEError, ConfigurationError, TransportError,
    HttpStatusError, ApplicationError, UNKNOWN_STATUS,
)
from .request import (
    ParameterResolver, MappingParameters, RequestItem, OutboundRequest,
    bind_parameters, build_request,
)
from .results import (
    Success, Failure, ApplicationFailure, HttpFailure,
    TransportFailure, ConfigurationFailure, NormalizedResult,
    classify_response,
)
from .transport import Transport, TransportResponse, HttpxTransport
from .plugins.base import Plugin, PluginRegistry
from .skill import (
    RiskLevel, ConfigScope, ConfigParam,
    SkillDescriptor, SkillExample, SkillResult, Skill, skill,
)
from .manifest import PluginManifest, PluginRequirements
from .safety import (
    SafetyViolation, SafetyError, SafetyPolicy,
    set_policy, get_policy, reset_policy,
    SecurityError, SecurityContext,
    set_security_context, get_security_context, reset_security_context,
)

__version__ = '0.1.0'

__all__ = [
    # Catalog
    'Catalog',
    'CatalogVariant',
    'OperationSpec',
    'ParameterBinding',
    'Location',
    'Kind',
    'RESOURCES',
    # Requests & dispatch
    'Settings',
    'ApiKeyCredentials',
    'Dispatcher',
    'ParameterResolver',
    'MappingParameters',
    'RequestItem',
    'OutboundRequest',
    'bind_parameters',
    'build_request',
    'Transport',
    'TransportResponse',
    'HttpxTransport',
    # Results & errors
    'Success',
    'Failure',
    'ApplicationFailure',
    'HttpFailure',
    'TransportFailure',
    'ConfigurationFailure',
    'NormalizedResult',
    'classify_response',
    'CarsXEError',
    'ConfigurationError',
    'TransportError',
    'HttpStatusError',
    'ApplicationError',
    'UNKNOWN_STATUS',
    # Plugin system
    'Plugin',
    'PluginRegistry',
    'PluginManifest',
    'PluginRequirements',
    # Skill system
    'RiskLevel',
    'ConfigScope',
    'ConfigParam',
    'SkillDescriptor',
    'SkillExample',
    'SkillResult',
    'Skill',
    'skill',
    # Safety
    'SafetyViolation',
    'SafetyError',
    'SafetyPolicy',
    'set_policy',
    'get_policy',
    'reset_policy',
    'SecurityError',
    'SecurityContext',
    'set_security_context',
    'get_security_context',
    'reset_security_context',
]
