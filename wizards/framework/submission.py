# -*- coding: utf-8 -*-
"""
Submission pipeline.

Resolves every entity step in order, then creates the composite link record.
The backend has no cross-entity transactions: a failure stops the run and
everything created before it stays committed. Results from a failed attempt
can be handed back in so a retry does not create the same entity twice.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.config import RetryPolicy
from services.directory import DirectoryClient
from services.exceptions import ApiException, SubmissionError, ValidationException
from services.error_mapper import field_messages, map_exception
from utils.logger import get_logger, redact

from .step_definition import StepDescriptor, WizardDefinition
from .wizard_context import CreateNew, UseExisting, WizardState, is_blank

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolutionResult:
    """Identifier obtained for one step during submission."""
    step_key: str
    entity_kind: str
    entity_id: Any
    created: bool
    fingerprint: str
    reused: bool = False
    replaced_id: Any = None  # entity an earlier attempt created for this step


@dataclass
class SubmissionOutcome:
    """What one submission attempt produced."""
    resolutions: Dict[str, ResolutionResult] = field(default_factory=dict)
    newly_resolved: List[str] = field(default_factory=list)
    reused_keys: List[str] = field(default_factory=list)
    composite_payload: Optional[Dict[str, Any]] = None
    composite_entity: Optional[Dict[str, Any]] = None
    error: Optional[SubmissionError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.composite_entity is not None


def fingerprint(kind: str, resolution: Any) -> str:
    """Stable digest of what a step would submit."""
    raw = json.dumps({"kind": kind, "input": resolution}, sort_keys=True, default=str)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


class SubmissionPipeline:
    """
    Sequential resolve-or-create over a WizardState snapshot.

    Usage:
        pipeline = SubmissionPipeline(definition, directory)
        outcome = pipeline.run(snapshot, prior_results)
    """

    def __init__(self, definition: WizardDefinition, directory: DirectoryClient,
                 retry_policy: str = RetryPolicy.REUSE,
                 context_values: Optional[Dict[str, Any]] = None):
        self.definition = definition
        self.directory = directory
        self.retry_policy = RetryPolicy.normalize(retry_policy)
        self.context_values = {
            key: value for key, value in (context_values or {}).items() if value is not None
        }

    def run(self, state: WizardState,
            prior: Optional[Dict[str, ResolutionResult]] = None) -> SubmissionOutcome:
        """
        Run one attempt. Never raises for remote failures; they come back
        as ``outcome.error`` with the results obtained so far.
        """
        outcome = SubmissionOutcome()
        if self.retry_policy == RetryPolicy.RECREATE or prior is None:
            prior = {}

        for index, descriptor in enumerate(self.definition.steps):
            if not descriptor.is_entity_step:
                continue
            try:
                result = self._resolve_step(descriptor, state, outcome.resolutions, prior)
            except Exception as e:
                outcome.error = self._failure(descriptor, index, e, outcome.resolutions)
                return outcome

            outcome.resolutions[descriptor.key] = result
            if result.reused:
                outcome.reused_keys.append(descriptor.key)
            else:
                outcome.newly_resolved.append(descriptor.key)

        payload = self.build_composite_payload(state, outcome.resolutions)
        outcome.composite_payload = payload
        logger.info(f"Creating {self.definition.composite_kind}: {redact(payload)}")
        try:
            outcome.composite_entity = self.directory.create_entity(
                self.definition.composite_kind, payload
            )
        except Exception as e:
            outcome.error = self._failure(None, len(self.definition) - 1, e, outcome.resolutions)
            return outcome

        logger.info(f"Submission of {self.definition.wizard_id} completed")
        return outcome

    def build_step_payload(self, descriptor: StepDescriptor, state: WizardState,
                           resolved: Dict[str, ResolutionResult]) -> Dict[str, Any]:
        """Create payload with earlier resolved ids substituted in."""
        payload = descriptor.build_payload(state.step(descriptor.key).fields, state)
        for payload_field, source_key in descriptor.inject.items():
            source = resolved.get(source_key)
            if source is None:
                raise ValidationException(
                    f"Step {descriptor.key} needs {source_key}, which is not resolved",
                    field=payload_field, context=descriptor.key
                )
            payload[payload_field] = source.entity_id
        for key, value in self.context_values.items():
            payload.setdefault(key, value)
        return payload

    def build_composite_payload(self, state: WizardState,
                                resolved: Dict[str, ResolutionResult]) -> Dict[str, Any]:
        links = {}
        for descriptor in self.definition.entity_steps:
            result = resolved[descriptor.key]
            links[descriptor.link_field or descriptor.key] = result.entity_id

        scalars = {
            name: value for name, value in state.scalars(self.definition).items()
            if not is_blank(value)
        }
        if self.definition.composite_builder is not None:
            payload = dict(self.definition.composite_builder(links, scalars))
        else:
            payload = dict(links)
            payload.update(scalars)
        for key, value in self.context_values.items():
            payload.setdefault(key, value)
        return payload

    def _resolve_step(self, descriptor: StepDescriptor, state: WizardState,
                      resolved: Dict[str, ResolutionResult],
                      prior: Dict[str, ResolutionResult]) -> ResolutionResult:
        resolution_input = state.step(descriptor.key).resolution_input()

        if isinstance(resolution_input, UseExisting):
            if is_blank(resolution_input.entity_id):
                raise ValidationException(
                    f"No existing {descriptor.title.lower()} selected",
                    field="selected_id", context=descriptor.key
                )
            logger.info(f"Step {descriptor.key}: using existing {descriptor.entity_kind} "
                        f"{resolution_input.entity_id}")
            return ResolutionResult(
                step_key=descriptor.key,
                entity_kind=descriptor.entity_kind,
                entity_id=resolution_input.entity_id,
                created=False,
                fingerprint=fingerprint(descriptor.entity_kind, ["existing", resolution_input.entity_id])
            )

        assert isinstance(resolution_input, CreateNew)
        payload = self.build_step_payload(descriptor, state, resolved)
        digest = fingerprint(descriptor.entity_kind, payload)

        previous = prior.get(descriptor.key)
        if previous is not None and previous.created and previous.fingerprint == digest:
            logger.info(f"Step {descriptor.key}: {descriptor.entity_kind} {previous.entity_id} "
                        f"already created by an earlier attempt; not creating again")
            return ResolutionResult(
                step_key=descriptor.key,
                entity_kind=descriptor.entity_kind,
                entity_id=previous.entity_id,
                created=True,
                fingerprint=digest,
                reused=True
            )
        replaced_id = None
        if previous is not None and previous.created:
            logger.warning(f"Step {descriptor.key}: input changed since {descriptor.entity_kind} "
                           f"{previous.entity_id} was created; creating a new one")
            replaced_id = previous.entity_id

        logger.info(f"Step {descriptor.key}: creating {descriptor.entity_kind} {redact(payload)}")
        created = self.directory.create_entity(descriptor.entity_kind, payload)
        return ResolutionResult(
            step_key=descriptor.key,
            entity_kind=descriptor.entity_kind,
            entity_id=created["id"],
            created=True,
            fingerprint=digest,
            replaced_id=replaced_id
        )

    def _failure(self, descriptor: Optional[StepDescriptor], index: int, error: Exception,
                 resolved: Dict[str, ResolutionResult]) -> SubmissionError:
        step_key = descriptor.key if descriptor else None
        kind = descriptor.entity_kind if descriptor else self.definition.composite_kind
        logger.error(f"Submission stopped at {step_key or 'link'} ({kind}): {error}",
                     exc_info=not isinstance(error, ApiException))
        message = map_exception(error)
        return SubmissionError(
            message=message,
            step_key=step_key,
            step_index=index,
            entity_kind=kind,
            field_errors=field_messages(error),
            resolutions=resolved,
            cause=error
        )
