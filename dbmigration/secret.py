"""Generated database credential and the by-name reference to its fields."""

from __future__ import annotations

import logging

from .context import BuildContext
from .models import CredentialReference, SecretDescriptor, StackParameters

logger = logging.getLogger(__name__)

USERNAME_FIELD = "username"


def provision_secret(ctx: BuildContext, params: StackParameters) -> SecretDescriptor:
    """
    Define the generated secret (username pre-seeded, password generated).

    Raises:
        NamingCollisionError: a secret with the same full name is already registered
    """
    secret = SecretDescriptor(
        logical_id="AuroraDBClusterSecret",
        secret_name=params.secret_full_name,
        description=params.secret_description,
        exclude_characters=params.exclude_characters,
        exclude_punctuation=params.exclude_punctuation,
        generate_string_key=params.generate_string_key,
        password_length=params.password_length,
        require_each_included_type=params.require_each_included_type,
        secret_string_template=params.secret_string_template,
    )
    ctx.graph.add(secret, name=secret.secret_name)
    # name only; the generated value is never observed here
    logger.debug("secret %s", secret.secret_name)
    return secret


def reference_credentials(ctx: BuildContext, secret_name: str) -> CredentialReference:
    """
    Re-resolve a registered secret by its exact name and hand out field handles.

    Raises:
        UnresolvedReferenceError: no secret with that name is registered yet
    """
    secret = ctx.graph.lookup(SecretDescriptor.kind, secret_name)
    return CredentialReference(
        secret_name=secret.secret_name,
        username_field=USERNAME_FIELD,
        password_field=secret.generate_string_key,
    )
