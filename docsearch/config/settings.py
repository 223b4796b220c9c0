from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    # "firebase" or "memory"
    backend: str = "firebase"

    firebase_project_id: str = ""
    firebase_api_key: str = ""
    firebase_storage_bucket: str = ""
    firebase_auth_token: str = ""
    documents_collection: str = "documents"
    documents_order_field: str = "uploadedAt"
    http_timeout: float = 30.0

    search_snippet_radius: int = 220
    search_max_results: int = 100
    search_suggestion_limit: int = 5
    search_escape_html: bool = True

    # Ranker
    rank_score_cutoff: float = 80.0
    rank_weight_content: float = 0.7
    rank_weight_file_name: float = 0.2
    rank_weight_title: float = 0.15
    rank_weight_author: float = 0.1

    # Uploads
    upload_max_concurrent: int = 3
    upload_retry_attempts: int = 3
    upload_retry_delay_base: float = 1.0
    upload_retry_delay_max: float = 10.0
    upload_chunk_size: int = 256 * 1024
    upload_allow_duplicates: bool = True
    upload_allow_security_warnings: bool = False
    upload_max_file_count: int = 10
    upload_max_batch_size: int = 100 * 1024 * 1024

    library_list_limit: int = 50
    library_poll_interval: float = 5.0
    library_delete_blobs: bool = False

    @property
    def rank_weights(self) -> dict[str, float]:
        return {
            "text_content": self.rank_weight_content,
            "file_name": self.rank_weight_file_name,
            "title": self.rank_weight_title,
            "author": self.rank_weight_author,
        }

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
