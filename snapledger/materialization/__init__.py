"""Transaction materialization package."""

from snapledger.materialization.materializer import TransactionMaterializer

__all__ = ["TransactionMaterializer"]
