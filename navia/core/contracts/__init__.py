from navia.core.contracts.agent import DomainResponse, ResourceLink, SourceReference, ResponseMetadata
from navia.core.contracts.gateway import QueryRequest, QueryResponse, StreamChatRequest
from navia.core.contracts.orchestrator import ChatMessage, IntentResult, OrchestrationResult
from navia.core.contracts.records import ChatTurn, SemanticRecord, Task

__all__ = [
    "DomainResponse",
    "ResourceLink",
    "SourceReference",
    "ResponseMetadata",
    "QueryRequest",
    "QueryResponse",
    "StreamChatRequest",
    "ChatMessage",
    "IntentResult",
    "OrchestrationResult",
    "ChatTurn",
    "SemanticRecord",
    "Task",
]
