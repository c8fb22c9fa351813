"""
Backend configuration
"""

from typing import Literal

from pydantic import BaseModel, Field


class SemanticBackendConfig(BaseModel):
    """Semantic-memory backend"""

    type: Literal["memory", "chroma"] = Field(default="memory", description="memory | chroma")
    path: str | None = Field(default=None, description="Local Chroma directory")
    host: str | None = Field(default=None, description="Remote Chroma host")
    port: int = Field(default=8000, description="Remote Chroma port")
    collection: str = Field(default="knowledge", description="Collection name")
    namespace: str = Field(default="kms", description="Collection prefix")


class GraphBackendConfig(BaseModel):
    """Graph backend"""

    type: Literal["memory", "neo4j"] = Field(default="memory", description="memory | neo4j")
    uri: str = Field(default="bolt://localhost:7687", description="Neo4j URI")
    username: str = Field(default="neo4j", description="Neo4j user")
    password: str = Field(default="", description="Neo4j password")
    database: str | None = Field(default=None, description="Neo4j database; None uses the default")


class DocumentBackendConfig(BaseModel):
    """Document backend"""

    type: Literal["memory", "sql"] = Field(default="memory", description="memory | sql")
    url: str = Field(default="sqlite://", description="SQLAlchemy database URL")
    table: str = Field(default="knowledge_document", description="Document table")


class BackendsConfig(BaseModel):
    semantic: SemanticBackendConfig = Field(default_factory=SemanticBackendConfig)
    graph: GraphBackendConfig = Field(default_factory=GraphBackendConfig)
    document: DocumentBackendConfig = Field(default_factory=DocumentBackendConfig)
