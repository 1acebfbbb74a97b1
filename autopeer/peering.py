"""
Peering lifecycle orchestrator.

    init(asn)                         challenge + skeleton config -> pending store
    verify(asn, signed, pgp_key)      signature + registry fingerprint -> credential,
                                      record moved pending -> verified
    deploy(token, wg_key, endpoint)   finalize [Peer] + [BGP], push tunnel then BIRD
    get_config / get_status           read-only views of the verified record
    update(token, endpoint)           new endpoint, tunnel redeployed
    activate / deactivate             push / pull the stored config, record kept
    delete(token)                     tear down and forget

Key exchange happens at deploy, after the peer has authenticated, so no
client-supplied WireGuard key is trusted before verification.

Every operation on an ASN holds that ASN's lock for its whole duration.
Cleanup and rollback after a failure are best-effort: they log and move on
without hiding the error that triggered them.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Iterator

from autopeer import CREDENTIAL_VALIDITY_SECS, DEFAULT_ALLOWED_IPS, DEFAULT_KEEPALIVE_SECS
from autopeer.auth import (
    SignatureError,
    decode_credential,
    issue_challenge,
    issue_credential,
    match_fingerprint,
    verify_credential,
    verify_signature,
)
from autopeer.deploy import BirdPeerConfig, generate_keypair, public_key_from_private
from autopeer.errors import BadRequest, InternalError, NotFound, PeeringError, Unauthorized
from autopeer.ipalloc import derive_addresses, interface_name, listen_port
from autopeer.registry import RegistryError
from autopeer.store import InvalidTransition, PeeringState, PeeringStore
from autopeer.validation import (
    validate_asn,
    validate_endpoint,
    validate_pgp_key,
    validate_signed_challenge,
    validate_wg_pubkey,
)
from autopeer.wgconf import (
    TUNNEL_SECTIONS,
    BgpSection,
    ChallengeSection,
    ConfigError,
    ConfigParseError,
    ConfigWriter,
    InterfaceSection,
    PeerSection,
    PeeringConfig,
)

logger = logging.getLogger(__name__)

REDACTED = "(redacted)"


@contextmanager
def _internal(action: str) -> Iterator[None]:
    """Turn storage and rendering failures into InternalError."""
    try:
        yield
    except PeeringError:
        raise
    except (OSError, ConfigError, ConfigParseError, InvalidTransition) as e:
        raise InternalError(f"{action}: {e}") from e


class PeeringService:
    """The peering state machine.

    Collaborators:
        store: PeeringStore for pending/verified records and state
        registry: anything with lookup_fingerprint(asn) / lookup_as_object(asn)
        deployer: anything with the SystemDeployer methods
    """

    def __init__(
        self,
        local_asn: int,
        secret: str,
        store: PeeringStore,
        registry: Any,
        deployer: Any,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.local_asn = local_asn
        self.secret = secret
        self.store = store
        self.registry = registry
        self.deployer = deployer
        self._clock = clock

    @classmethod
    def from_config(cls, config: Any) -> PeeringService:
        """Wire up the production collaborators from an AppConfig."""
        from autopeer.deploy import SystemDeployer
        from autopeer.registry import Registry

        return cls(
            local_asn=config.local_asn,
            secret=config.secret,
            store=PeeringStore(config.pending_dir, config.verified_dir),
            registry=Registry(config.registry.path),
            deployer=SystemDeployer(
                config.wireguard_dir, config.bird_peers_dir, config.deploy_timeout,
            ),
        )

    # -- helpers ------------------------------------------------------------

    def _now(self) -> int:
        return int(self._clock())

    def _authenticate(self, token: str, asn: int | None = None) -> int:
        if not token:
            raise Unauthorized("Missing credential")
        if asn is None:
            return decode_credential(token, self.secret, now=self._now()).asn
        validate_asn(asn)
        return verify_credential(token, asn, self.secret, now=self._now()).asn

    def _load_verified(self, asn: int) -> PeeringConfig:
        with _internal(f"Cannot read verified record for AS{asn}"):
            return self.store.load_verified(asn).config

    def _call_deployer(self, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except PeeringError:
            raise
        except Exception as e:
            raise InternalError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _best_effort(action: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.warning("Could not %s (continuing): %s", action, e)

    @staticmethod
    def _new_private_key() -> str:
        try:
            private_key, _ = generate_keypair()
        except Exception as e:
            raise InternalError(f"WireGuard key generation failed: {e}") from e
        return private_key

    def _our_public_key(self, config: PeeringConfig) -> str:
        """Our tunnel public key; regenerates the private key if it is unusable."""
        try:
            return public_key_from_private(config.interface.private_key)
        except ValueError:
            logger.warning("Stored private key is invalid, generating a new one")
        config.interface.private_key = self._new_private_key()
        return public_key_from_private(config.interface.private_key)

    def _peer_name(self, asn: int) -> str:
        try:
            return self.registry.lookup_as_object(asn).as_name
        except RegistryError:
            return ""

    def _push_tunnel(self, asn: int, config: PeeringConfig) -> None:
        with _internal("Cannot render tunnel config"):
            text = ConfigWriter.render(config, sections=TUNNEL_SECTIONS)
        self._call_deployer("deploy tunnel", self.deployer.deploy_tunnel, text, interface_name(asn))

    def _push(self, asn: int, config: PeeringConfig) -> None:
        """Deploy tunnel, then BGP. A BGP failure rolls the tunnel back."""
        if not config.is_finalized:
            raise BadRequest(f"AS{asn} has no peer configuration yet; call deploy first")

        bgp = config.bgp
        routing = BirdPeerConfig(
            local_asn=self.local_asn,
            peer_asn=asn,
            peer_name=self._peer_name(asn),
            interface=interface_name(asn),
            local_ip=bgp.local,
            neighbor_ip=bgp.neighbor,
            mpbgp=bgp.mpbgp,
            extended_next_hop=bgp.extended_next_hop,
        ).render()

        self._push_tunnel(asn, config)
        try:
            self._call_deployer("deploy BGP session", self.deployer.deploy_routing, routing, asn)
        except PeeringError as e:
            logger.error("AS%d: BGP deploy failed, rolling back tunnel: %s", asn, e.message)
            self._best_effort(f"roll back tunnel for AS{asn}", self.deployer.remove_tunnel, interface_name(asn))
            raise

    def _pull(self, asn: int) -> None:
        """Remove BGP session, then the tunnel."""
        self._call_deployer("remove BGP session", self.deployer.remove_routing, asn)
        self._call_deployer("remove tunnel", self.deployer.remove_tunnel, interface_name(asn))

    def _summary(self, asn: int, config: PeeringConfig, state: PeeringState | None) -> dict:
        try:
            public_key = public_key_from_private(config.interface.private_key)
        except ValueError:
            public_key = None
        peer = config.peer
        bgp = config.bgp
        return {
            "asn": asn,
            "interface": interface_name(asn),
            "state": state.value if state else None,
            "public_key": public_key,
            "listen_port": config.interface.listen_port,
            "addresses": list(config.interface.addresses),
            "peer": None if peer is None else {
                "public_key": peer.public_key,
                "endpoint": peer.endpoint,
                "allowed_ips": list(peer.allowed_ips),
                "persistent_keepalive": peer.persistent_keepalive,
            },
            "bgp": None if bgp is None else {
                "local": bgp.local,
                "neighbor": bgp.neighbor,
                "mpbgp": bgp.mpbgp,
                "extended_next_hop": bgp.extended_next_hop,
            },
        }

    # -- operations ---------------------------------------------------------

    def init(self, asn: int) -> dict:
        """Issue a challenge for ``asn`` and store the skeleton config.

        Fails closed: an ASN without a registered PGP fingerprint gets
        NotFound before anything is written.
        """
        validate_asn(asn)
        logger.info("Peering init request for AS%d", asn)
        fingerprint = self.registry.lookup_fingerprint(asn)

        challenge = issue_challenge(asn)
        addrs = derive_addresses(self.local_asn, asn)
        config = PeeringConfig(
            interface=InterfaceSection(
                addresses=[addrs.local],
                private_key=self._new_private_key(),
                listen_port=listen_port(asn),
                table="off",
            ),
            challenge=ChallengeSection(code=challenge.code, asn=asn),
        )

        with self.store.lock(asn), _internal(f"Cannot store challenge for AS{asn}"):
            self.store.save_pending(asn, config)

        return {
            "challenge": challenge.code,
            "pgp_fingerprint": fingerprint,
            "interface": interface_name(asn),
        }

    def verify(self, asn: int, signed_challenge: str, public_key: str) -> dict:
        """Check the signed challenge and issue a credential.

        An ASN that is already verified keeps its record (and tunnel); only
        a fresh credential is issued.
        """
        validate_asn(asn)
        validate_signed_challenge(signed_challenge)
        validate_pgp_key(public_key)
        logger.info("Peering verify request for AS%d", asn)

        with self.store.lock(asn):
            with _internal(f"Cannot read pending record for AS{asn}"):
                config = self.store.load_pending(asn).config
            challenge = config.challenge
            if challenge is None:
                raise NotFound(f"No pending challenge for AS{asn}")
            if challenge.asn != asn:
                raise BadRequest(f"Challenge was issued for AS{challenge.asn}, not AS{asn}")

            try:
                verify_signature(challenge.code, signed_challenge, public_key)
            except SignatureError as e:
                logger.warning("AS%d: signature rejected: %s", asn, e.message)
                raise

            try:
                expected = self.registry.lookup_fingerprint(asn)
            except RegistryError as e:
                raise Unauthorized(f"No registered PGP key for AS{asn}") from e
            if not match_fingerprint(public_key, expected):
                logger.warning("AS%d: key fingerprint does not match registry %s", asn, expected)
                raise Unauthorized("PGP key does not match the fingerprint registered for this ASN")

            now = self._now()
            token = issue_credential(asn, self.secret, now=now)

            with _internal(f"Cannot store verified record for AS{asn}"):
                if self.store.has_verified(asn):
                    self.store.delete_pending(asn)
                else:
                    self.store.promote(asn, config)

        logger.info("AS%d verified", asn)
        return {
            "token": token,
            "asn": asn,
            "expires_at": now + CREDENTIAL_VALIDITY_SECS,
        }

    def deploy(
        self,
        token: str,
        wg_public_key: str | None = None,
        endpoint: str | None = None,
        asn: int | None = None,
    ) -> dict:
        """Finalize the peer and BGP sections, then push them to the router.

        ``wg_public_key`` and ``endpoint`` are required unless the record
        already has a [Peer] section (a plain redeploy).
        """
        asn = self._authenticate(token, asn)
        logger.info("Peering deploy request for AS%d", asn)

        with self.store.lock(asn):
            config = self._load_verified(asn)
            state = self.store.get_state(asn)

            if wg_public_key is None and endpoint is None:
                if config.peer is None:
                    raise BadRequest("wg_public_key and endpoint are required")
            elif wg_public_key is None or endpoint is None:
                raise BadRequest("wg_public_key and endpoint must be given together")
            else:
                config.peer = PeerSection(
                    public_key=validate_wg_pubkey(wg_public_key),
                    allowed_ips=list(DEFAULT_ALLOWED_IPS),
                    endpoint=validate_endpoint(endpoint),
                    persistent_keepalive=DEFAULT_KEEPALIVE_SECS,
                )

            self._our_public_key(config)
            addrs = derive_addresses(self.local_asn, asn)
            if config.bgp is None:
                config.bgp = BgpSection(local=addrs.local_addr, neighbor=addrs.peer)
            else:
                config.bgp.local, config.bgp.neighbor = addrs.local_addr, addrs.peer

            with _internal(f"Cannot store peering for AS{asn}"):
                self.store.save_verified(asn, config)

            if state is PeeringState.DEPLOYED:
                self._best_effort(f"remove old tunnel for AS{asn}", self.deployer.remove_tunnel, interface_name(asn))
            self._push(asn, config)

            with _internal(f"Cannot record state for AS{asn}"):
                self.store.set_state(asn, PeeringState.DEPLOYED)

        logger.info("AS%d deployed on %s", asn, interface_name(asn))
        return self._summary(asn, config, PeeringState.DEPLOYED)

    def get_config(self, token: str) -> dict:
        """The stored config as text, private key redacted."""
        asn = self._authenticate(token)
        with self.store.lock(asn):
            config = self._load_verified(asn)
        shown = replace(config, interface=replace(config.interface, private_key=REDACTED))
        with _internal("Cannot render config"):
            text = ConfigWriter.render(shown)
        return {"asn": asn, "interface": interface_name(asn), "config": text}

    def get_status(self, token: str) -> dict:
        asn = self._authenticate(token)
        with self.store.lock(asn):
            config = self._load_verified(asn)
            state = self.store.get_state(asn)
            active = self._call_deployer(
                "query interface", self.deployer.is_interface_active, interface_name(asn),
            )
        status = self._summary(asn, config, state)
        status["interface_active"] = bool(active)
        return status

    def update(self, token: str, endpoint: str | None = None) -> dict:
        """Change the peer endpoint; a deployed tunnel is redeployed."""
        asn = self._authenticate(token)
        logger.info("Peering update request for AS%d", asn)

        with self.store.lock(asn):
            config = self._load_verified(asn)
            state = self.store.get_state(asn)

            if endpoint is not None:
                validate_endpoint(endpoint)
                if config.peer is None:
                    raise BadRequest(f"AS{asn} has no [Peer] section yet; call deploy first")
                config.peer.endpoint = endpoint
                with _internal(f"Cannot store peering for AS{asn}"):
                    self.store.save_verified(asn, config)

            if state is PeeringState.DEPLOYED:
                self._best_effort(f"remove tunnel for AS{asn}", self.deployer.remove_tunnel, interface_name(asn))
                self._push_tunnel(asn, config)

        return self._summary(asn, config, state)

    def activate(self, token: str) -> dict:
        """Redeploy tunnel and BGP from the stored config, nothing regenerated."""
        asn = self._authenticate(token)
        logger.info("Peering activate request for AS%d", asn)

        with self.store.lock(asn):
            config = self._load_verified(asn)
            state = self.store.get_state(asn)
            if not config.is_finalized:
                raise BadRequest(f"AS{asn} has not been deployed yet; call deploy first")
            if state is PeeringState.DEPLOYED:
                self._best_effort(f"remove tunnel for AS{asn}", self.deployer.remove_tunnel, interface_name(asn))
            self._push(asn, config)
            with _internal(f"Cannot record state for AS{asn}"):
                self.store.set_state(asn, PeeringState.DEPLOYED)

        return self._summary(asn, config, PeeringState.DEPLOYED)

    def deactivate(self, token: str) -> dict:
        """Take tunnel and BGP down; the verified record stays."""
        asn = self._authenticate(token)
        logger.info("Peering deactivate request for AS%d", asn)

        with self.store.lock(asn):
            config = self._load_verified(asn)
            state = self.store.get_state(asn)
            self._pull(asn)
            if state is PeeringState.DEPLOYED:
                state = PeeringState.INACTIVE
                with _internal(f"Cannot record state for AS{asn}"):
                    self.store.set_state(asn, state)

        return self._summary(asn, config, state)

    def delete(self, token: str) -> dict:
        """Tear down and delete every record for the credential's ASN.

        A failure partway (e.g. BIRD removed, tunnel not) is reported as
        InternalError and left as is.
        """
        asn = self._authenticate(token)
        logger.info("Peering delete request for AS%d", asn)

        with self.store.lock(asn):
            self._pull(asn)
            with _internal(f"Cannot delete records for AS{asn}"):
                self.store.delete_verified(asn)
                self.store.delete_pending(asn)

        logger.info("AS%d deleted", asn)
        return {"asn": asn, "deleted": True}

    def list_peerings(self) -> list[dict]:
        """ASN, interface and state for every verified record."""
        return [
            {
                "asn": asn,
                "interface": interface_name(asn),
                "state": (self.store.get_state(asn) or PeeringState.VERIFIED).value,
            }
            for asn in self.store.list_verified()
        ]
