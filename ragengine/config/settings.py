
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    # Vector index: "memory" or "chroma"
    vector_backend: str = "memory"
    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection: str = "enterprise_documents"

    # LLM: "openai" (any OpenAI-compatible endpoint, e.g. Ollama) or "azure"
    llm_provider: str = "openai"
    llm_base_url: str = "http://localhost:11434/v1"
    llm_api_key: str = "ollama"
    llm_model: str = "qwen2.5:7b"
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.3
    azure_endpoint: str = ""
    azure_api_version: str = "2024-05-01-preview"

    # Embeddings: "sentence_transformer", "openai" or "hashing"
    embedding_backend: str = "sentence_transformer"
    embedding_model: str = "intfloat/multilingual-e5-base"
    embedding_base_url: str | None = None
    embedding_api_key: str = ""
    embedding_dimension: int = 384
    embedding_concurrency: int = 4
    embedding_batch_size: int = 16

    docs_path: str = "./docs"

    max_chunk_chars: int = 1000
    chunk_overlap_chars: int = 200
    min_chunk_chars: int = 50

    max_chunks_per_query: int = 5
    similarity_threshold: float = 0.3
    query_timeout_seconds: float = 30.0

    cache_ttl_seconds: float = 3600.0
    cache_max_entries: int | None = None

    # Delivery
    max_frame_bytes: int = 950
    max_answer_bytes: int = 256 * 1024
    frame_bytes_per_second: int = 6000

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
