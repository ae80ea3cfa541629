from core.repositories.document_repository import DocumentRepository, header_columns

__all__ = ["DocumentRepository", "header_columns"]
