from .keys import PrivateKeyHandle
from .signatures import SigningService, DEADLINE_FIELD
from .standards import PermitMessage, PermitTypedData
from .verifies import (
    recover_digest_signer,
    recover_typed_data_signer,
    typed_data_digest,
    verify_typed_data,
)

__all__ = [
    "PrivateKeyHandle",
    "SigningService",
    "DEADLINE_FIELD",
    "PermitMessage",
    "PermitTypedData",
    "recover_digest_signer",
    "recover_typed_data_signer",
    "typed_data_digest",
    "verify_typed_data",
]
