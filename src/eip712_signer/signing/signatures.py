"""
EIP-712 Signing Service

Local EIP-712 signing with deadline injection and mandatory
self-verification.  All cryptographic operations are performed in-process
using ``eth_account``; no RPC calls or on-chain state queries are made.

Signing pipeline (``SigningService.sign``)
------------------------------------------
1. Reconcile the message to the declared field order of its primary type.
2. Inject ``deadline`` when the type declares it and the message lacks it.
3. Hash the message struct.
4. Fetch the domain separator (cached per signer and domain).
5. Build the ``0x1901`` digest.
6. Sign the digest with the held key.
7. Recover the signer from the digest, and independently from the full
   typed data via ``eth_account``; any disagreement with the held key's
   address raises ``ConsistencyFailure``.

Example::

    service = SigningService("0xYOUR_PRIVATE_KEY")
    result = service.sign_permit(
        token_name="USD Coin",
        token_version="2",
        chain_id=1,
        verifying_contract="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        spender="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
        value=1_000_000,
        nonce=0,
    )
    result.signature_hex   # 65-byte r || s || v
"""

import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..config import DEFAULT_DEADLINE_DURATION, SignerSettings, load_settings
from ..encoding.digest import build_digest
from ..encoding.domain import DomainSeparatorCache
from ..encoding.reconcile import ExtraFieldPolicy, FieldOrderReconciler
from ..encoding.structured import (
    DomainLike,
    TypesLike,
    as_domain,
    breakdown_typed_data,
    resolve_types,
)
from ..encoding.types import FieldKind, TypeRegistry
from ..encoding.values import ValueEncoder, coerce_integer
from ..engine.exceptions import ConfigurationError, ConsistencyFailure, SigningError
from ..schemas.typed_data import DigestBreakdown, ECDSASignature, EIP712Domain, SigningResult
from ..utils import logger, to_hex
from .keys import PrivateKeyHandle
from .standards import PermitMessage, PermitTypedData
from .verifies import recover_digest_signer, recover_typed_data_signer

DEADLINE_FIELD = "deadline"

#: Deadlines are carried as unsigned 64-bit seconds since the epoch.
_MAX_DEADLINE = 2 ** 64 - 1


class SigningService:
    """
    Holds one private key and signs EIP-712 typed data with it.

    Instances are safe to share between threads: the key is read-only and
    the domain separator cache is populated under a lock.

    Args:
        private_key: Hex key, raw bytes, or an existing ``PrivateKeyHandle``.
        deadline_duration: Seconds added to the current time for injected
            deadlines.
        extra_field_policy: ``drop`` (default) removes undeclared message
            fields; ``error`` rejects them.
        clock: Source of the current Unix time; ``time.time`` by default.

    Raises:
        InvalidPrivateKey: Malformed key material.
        ConfigurationError: Negative ``deadline_duration``.
    """

    def __init__(
        self,
        private_key: Union[str, bytes, PrivateKeyHandle],
        *,
        deadline_duration: int = DEFAULT_DEADLINE_DURATION,
        extra_field_policy: Union[ExtraFieldPolicy, str] = ExtraFieldPolicy.DROP,
        clock: Callable[[], float] = time.time,
    ):
        self._key = private_key if isinstance(private_key, PrivateKeyHandle) else PrivateKeyHandle(private_key)
        if deadline_duration < 0:
            raise ConfigurationError(f"deadline_duration must be non-negative, got {deadline_duration}")
        self._deadline_duration = int(deadline_duration)
        try:
            self._reconciler = FieldOrderReconciler(ExtraFieldPolicy(extra_field_policy))
        except ValueError:
            raise ConfigurationError(f"Unknown extra field policy: {extra_field_policy!r}") from None
        self._clock = clock
        self._domain_cache = DomainSeparatorCache()

    @classmethod
    def from_settings(cls, settings: Optional[SignerSettings] = None, **kwargs) -> "SigningService":
        """
        Build a service from ``SignerSettings`` (loaded from the environment
        when omitted).

        Raises:
            ConfigurationError: No private key configured.
        """
        settings = settings or load_settings()
        if settings.private_key is None:
            raise ConfigurationError(
                "Private key not provided. Either pass it explicitly or "
                "set the EIP712_PRIVATE_KEY environment variable."
            )
        return cls(
            settings.private_key.get_secret_value(),
            deadline_duration=settings.deadline_duration,
            extra_field_policy=settings.extra_field_policy,
            **kwargs,
        )

    def __repr__(self) -> str:
        return f"SigningService(signer={self.signer_address})"

    @property
    def signer_address(self) -> str:
        return self._key.address

    @property
    def deadline_duration(self) -> int:
        return self._deadline_duration

    def generate_deadline(self, duration: Optional[int] = None) -> int:
        """Current Unix time plus ``duration`` (default: the configured duration)."""
        duration = self._deadline_duration if duration is None else duration
        if duration < 0:
            raise ConfigurationError(f"deadline duration must be non-negative, got {duration}")
        return int(self._clock()) + int(duration)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(
        self,
        domain: DomainLike,
        types: TypesLike,
        message: Mapping[str, Any],
        *,
        primary_type: Optional[str] = None,
        deadline: Optional[int] = None,
        deadline_duration: Optional[int] = None,
    ) -> SigningResult:
        """
        Sign an EIP-712 message and verify the signature before returning it.

        Args:
            domain: ``EIP712Domain`` or a mapping with ``name``, ``version``,
                ``chainId`` and ``verifyingContract``.
            types: Struct definitions (an ``EIP712Domain`` entry is ignored).
            message: Value tree of the primary type.
            primary_type: Root struct; derived when omitted.
            deadline: Deadline to inject when the type declares ``deadline``
                and the message lacks one.  Ignored for types without a
                ``deadline`` field.
            deadline_duration: Overrides the configured duration for a
                generated deadline.

        Returns:
            ``SigningResult`` whose ``recovered_address`` equals
            ``signer_address``.

        Raises:
            MissingTypeDefinition, CyclicTypeGraph: Malformed types.
            EncodingMismatch: Message does not fit its type.
            ConfigurationError: Invalid domain, primary type or deadline.
            ConsistencyFailure: The produced signature failed self-verification.
        """
        domain = as_domain(domain)
        registry, primary = resolve_types(types, primary_type)

        reconciliation = self._reconciler.reconcile(registry, primary, message)
        final_tree = self._apply_deadline(registry, primary, reconciliation.value, deadline, deadline_duration)

        struct_hash = ValueEncoder(registry).hash_struct(primary, final_tree)
        separator = self._domain_cache.get(self.signer_address, domain)
        digest = build_digest(separator, struct_hash)
        logger.debug("Signing %s digest %s (struct hash %s)", primary, to_hex(digest), to_hex(struct_hash))

        signature = self._key.sign_digest(digest)
        recovered = self._self_verify(domain, registry, primary, final_tree, digest, signature)

        return SigningResult(
            signature=ECDSASignature.from_bytes(signature),
            digest=to_hex(digest),
            signer_address=self.signer_address,
            recovered_address=recovered,
            primary_type=primary,
            final_value_tree=final_tree,
            deadline=_result_deadline(registry, primary, final_tree),
            dropped_fields=reconciliation.dropped_fields,
        )

    def sign_permit(
        self,
        *,
        token_name: str,
        chain_id: int,
        verifying_contract: str,
        spender: str,
        value: Union[int, str],
        nonce: int,
        owner: Optional[str] = None,
        deadline: Optional[int] = None,
        token_version: str = "1",
    ) -> SigningResult:
        """
        Sign an ERC-20 ``Permit`` (EIP-2612) for ``spender``.

        Args:
            token_name: Token's EIP-712 domain name (e.g. ``"USD Coin"``).
            chain_id: EVM network ID.
            verifying_contract: Token contract address.
            spender: Address authorised to spend.
            value: Allowance in the token's smallest unit.
            nonce: Token's current permit nonce for ``owner``.
            owner: Token owner; defaults to the held key's address.
            deadline: Permit expiry; defaults to now + configured duration.
            token_version: Token's EIP-712 domain version (default ``"1"``).
        """
        typed_data = PermitTypedData(
            domain=EIP712Domain(
                name=token_name,
                version=token_version,
                chainId=chain_id,
                verifyingContract=verifying_contract,
            ),
            message=PermitMessage(
                owner=owner or self.signer_address,
                spender=spender,
                value=value,
                nonce=nonce,
                deadline=deadline if deadline is not None else self.generate_deadline(),
            ),
        )
        full = typed_data.to_dict()
        return self.sign(
            full["domain"],
            full["types"],
            full["message"],
            primary_type=full["primaryType"],
            deadline=typed_data.message.deadline,
        )

    # ------------------------------------------------------------------
    # Hash-only helpers
    # ------------------------------------------------------------------

    def hash_typed_data(
        self,
        domain: DomainLike,
        types: TypesLike,
        message: Mapping[str, Any],
        *,
        primary_type: Optional[str] = None,
    ) -> bytes:
        """Digest ``sign`` would produce for a message that already carries every field."""
        domain = as_domain(domain)
        registry, primary = resolve_types(types, primary_type)
        value = self._reconciler.reconcile(registry, primary, message).value
        struct_hash = ValueEncoder(registry).hash_struct(primary, value)
        return build_digest(self._domain_cache.get(self.signer_address, domain), struct_hash)

    def breakdown(
        self,
        domain: DomainLike,
        types: TypesLike,
        message: Mapping[str, Any],
        *,
        primary_type: Optional[str] = None,
    ) -> DigestBreakdown:
        """Intermediate hashes of the digest for ``message`` after reconciliation."""
        registry, primary = resolve_types(types, primary_type)
        value = self._reconciler.reconcile(registry, primary, message).value
        return breakdown_typed_data(domain, registry, value, primary)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_deadline(
        self,
        registry: TypeRegistry,
        primary_type: str,
        tree: Dict[str, Any],
        deadline: Optional[int],
        duration: Optional[int],
    ) -> Dict[str, Any]:
        if not registry.has_field(primary_type, DEADLINE_FIELD):
            # Adding an undeclared field cannot change the digest.
            if deadline is not None:
                logger.debug("%s declares no deadline field; explicit deadline ignored", primary_type)
            return tree

        current = tree.get(DEADLINE_FIELD)
        if current is not None:
            if deadline is not None and str(current) != str(deadline):
                logger.warning(
                    "Message deadline %s differs from explicit deadline %s; keeping the message value",
                    current, deadline,
                )
            return tree

        if deadline is None:
            deadline = self.generate_deadline(duration)
        elif isinstance(deadline, bool) or not isinstance(deadline, int) or not 0 <= deadline <= _MAX_DEADLINE:
            raise ConfigurationError(f"deadline must be an unsigned 64-bit integer, got {deadline!r}")
        logger.debug("Injecting deadline %s into %s", deadline, primary_type)

        updated = dict(tree)
        updated[DEADLINE_FIELD] = deadline
        return {name: updated[name] for name in registry.field_names(primary_type) if name in updated}

    def _self_verify(
        self,
        domain: EIP712Domain,
        registry: TypeRegistry,
        primary_type: str,
        final_tree: Dict[str, Any],
        digest: bytes,
        signature: bytes,
    ) -> str:
        expected = self.signer_address
        try:
            recovered = recover_digest_signer(digest, signature)
        except SigningError as e:
            raise ConsistencyFailure(expected, "<unrecoverable>", f"digest recovery: {e}") from e
        if recovered != expected:
            raise ConsistencyFailure(expected, recovered, "digest recovery")

        try:
            typed_recovered = recover_typed_data_signer(domain, registry, final_tree, signature, primary_type)
        except SigningError as e:
            raise ConsistencyFailure(expected, "<unrecoverable>", f"typed-data recovery: {e}") from e
        if typed_recovered != expected:
            raise ConsistencyFailure(expected, typed_recovered, "typed-data recovery")
        return recovered


def _result_deadline(registry: TypeRegistry, primary_type: str, tree: Mapping[str, Any]) -> Optional[int]:
    """Integer deadline of the signed tree, parsed the way the encoder parsed it."""
    for typed_field in registry.fields(primary_type):
        if typed_field.name == DEADLINE_FIELD and typed_field.type.kind in (FieldKind.UINT, FieldKind.INT):
            return coerce_integer(typed_field.type, tree[DEADLINE_FIELD], f"{primary_type}.{DEADLINE_FIELD}")
    return None
