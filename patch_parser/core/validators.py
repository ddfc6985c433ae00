"""
Validation framework for selector chains, numeric bounds and image URLs.

Validators return ValidationResult objects instead of raising, so callers can
decide whether an invalid value is an error or simply a rejected candidate.
"""

import re
import threading
import time
import urllib.parse
from collections import Counter
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from re import Pattern
from typing import Any

from ..constants import (
    IMAGE_ALLOWED_FORMATS,
    IMAGE_ALLOWED_PROTOCOLS,
    IMAGE_MAX_URL_LENGTH,
    IMAGE_MIN_BASE64_LENGTH,
    IMAGE_MIN_DATA_URL_LENGTH,
)
from .exceptions import ValidationError
from .logging import get_logger

logger = get_logger(__name__)

EMPTY_SVG_DATA_URL = 'data:image/svg+xml,<svg xmlns="http://www.w3.org/2000/svg"/>'


class ValidationResult:
    """Result of a validation operation."""

    def __init__(
        self,
        is_valid: bool,
        error_message: str | None = None,
        value: Any = None,
        reason: str | None = None,
    ):
        self.is_valid = is_valid
        self.error_message = error_message
        self.value = value
        self.reason = reason

    def __bool__(self) -> bool:
        return self.is_valid

    def __repr__(self) -> str:
        state = "valid" if self.is_valid else f"invalid: {self.error_message}"
        return f"ValidationResult({state})"

    @classmethod
    def success(cls, value: Any = None) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(True, None, value)

    @classmethod
    def failure(
        cls, error_message: str, value: Any = None, reason: str | None = None
    ) -> "ValidationResult":
        """Create a failed validation result."""
        return cls(False, error_message, value, reason)


class BaseValidator:
    """Base class for all validators."""

    def __init__(self, error_message: str | None = None, required: bool = True):
        self.error_message = error_message
        self.required = required

    def validate(self, value: Any, field_name: str = "value") -> ValidationResult:
        """
        Validate a value.

        Args:
            value: Value to validate
            field_name: Name of the field being validated

        Returns:
            ValidationResult
        """
        # Handle None/empty values based on required flag
        if value is None or (isinstance(value, str) and not value.strip()):
            if self.required:
                return ValidationResult.failure(
                    self.error_message or f"{field_name} is required",
                    reason="empty_or_invalid_input",
                )
            else:
                return ValidationResult.success(value)

        return self._validate_value(value, field_name)

    def _validate_value(self, value: Any, field_name: str) -> ValidationResult:
        """Override in subclasses to implement specific validation logic."""
        return ValidationResult.success(value)

    def __call__(self, value: Any, field_name: str = "value") -> ValidationResult:
        """Allow validator to be called as a function."""
        return self.validate(value, field_name)


class StringValidator(BaseValidator):
    """Validator for string values."""

    def __init__(
        self,
        min_length: int | None = None,
        max_length: int | None = None,
        pattern: str | Pattern[str] | None = None,
        strip: bool = True,
        error_message: str | None = None,
        required: bool = True,
    ):
        super().__init__(error_message, required)
        self.min_length = min_length
        self.max_length = max_length
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.strip = strip

    def _validate_value(self, value: Any, field_name: str) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failure(f"{field_name} must be a string")

        if self.strip:
            value = value.strip()

        if self.required and not value:
            return ValidationResult.failure(
                self.error_message or f"{field_name} cannot be empty"
            )

        if self.min_length is not None and len(value) < self.min_length:
            return ValidationResult.failure(
                self.error_message
                or f"{field_name} must be at least {self.min_length} characters"
            )

        if self.max_length is not None and len(value) > self.max_length:
            return ValidationResult.failure(
                self.error_message
                or f"{field_name} must be at most {self.max_length} characters"
            )

        if self.pattern and not self.pattern.match(value):
            return ValidationResult.failure(
                self.error_message or f"{field_name} does not match required pattern"
            )

        return ValidationResult.success(value)


class NumericValidator(BaseValidator):
    """Validator for numeric values."""

    def __init__(
        self,
        min_value: int | float | None = None,
        max_value: int | float | None = None,
        integer_only: bool = False,
        error_message: str | None = None,
        required: bool = True,
    ):
        super().__init__(error_message, required)
        self.min_value = min_value
        self.max_value = max_value
        self.integer_only = integer_only

    def _validate_value(self, value: Any, field_name: str) -> ValidationResult:
        if isinstance(value, bool):
            return ValidationResult.failure(f"{field_name} must be a number")

        if self.integer_only:
            if not isinstance(value, int):
                return ValidationResult.failure(f"{field_name} must be an integer")
        elif not isinstance(value, int | float):
            return ValidationResult.failure(f"{field_name} must be a number")

        if self.min_value is not None and value < self.min_value:
            return ValidationResult.failure(
                f"{field_name} must be at least {self.min_value}"
            )

        if self.max_value is not None and value > self.max_value:
            return ValidationResult.failure(
                f"{field_name} must be at most {self.max_value}"
            )

        return ValidationResult.success(value)


class CollectionValidator(BaseValidator):
    """Validator for collections (lists, tuples, etc.)."""

    def __init__(
        self,
        min_length: int | None = None,
        max_length: int | None = None,
        item_validator: BaseValidator | None = None,
        error_message: str | None = None,
        required: bool = True,
    ):
        super().__init__(error_message, required)
        self.min_length = min_length
        self.max_length = max_length
        self.item_validator = item_validator

    def _validate_value(self, value: Any, field_name: str) -> ValidationResult:
        # Ensure it's a collection
        if not hasattr(value, "__len__") or isinstance(value, str | bytes):
            return ValidationResult.failure(f"{field_name} must be a collection")

        if self.min_length is not None and len(value) < self.min_length:
            return ValidationResult.failure(
                self.error_message
                or f"{field_name} must contain at least {self.min_length} items"
            )

        if self.max_length is not None and len(value) > self.max_length:
            return ValidationResult.failure(
                f"{field_name} must contain at most {self.max_length} items"
            )

        # Validate individual items
        if self.item_validator:
            validated_items = []
            for i, item in enumerate(value):
                result = self.item_validator.validate(item, f"{field_name}[{i}]")
                if not result.is_valid:
                    return result
                validated_items.append(result.value)
            return ValidationResult.success(validated_items)

        return ValidationResult.success(list(value))


@dataclass(frozen=True)
class ValidationRule:
    """Caller-supplied image URL check, applied in descending priority order."""

    name: str
    validator: Callable[[str], bool]
    error_message: str
    priority: int = 0


@dataclass
class ImageValidationMetrics:
    """Counters kept by ImageUrlValidator"""

    total_validations: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    average_validation_time: float = 0.0
    protocol_distribution: Counter = field(default_factory=Counter)
    format_distribution: Counter = field(default_factory=Counter)
    common_errors: Counter = field(default_factory=Counter)


class ImageUrlValidator(BaseValidator):
    """
    Validator for image references found in src/data-src attributes.

    Accepts absolute http(s) URLs, protocol-relative URLs and data URLs.
    Root-relative paths are rejected because an image reference must be
    resolvable without a base document. Unknown formats only fail in strict
    mode; custom rules run after the built-in checks.
    """

    def __init__(
        self,
        allowed_protocols: Collection[str] = IMAGE_ALLOWED_PROTOCOLS,
        allowed_formats: Collection[str] = IMAGE_ALLOWED_FORMATS,
        min_data_url_length: int = IMAGE_MIN_DATA_URL_LENGTH,
        max_url_length: int = IMAGE_MAX_URL_LENGTH,
        strict_mode: bool = False,
        enable_metrics: bool = True,
        custom_rules: Collection[ValidationRule] | None = None,
    ):
        super().__init__(required=True)
        self.allowed_protocols = {p.lower().rstrip(":") for p in allowed_protocols}
        self.allowed_formats = {f.lower() for f in allowed_formats}
        self.min_data_url_length = min_data_url_length
        self.max_url_length = max_url_length
        self.strict_mode = strict_mode
        self.enable_metrics = enable_metrics
        self.custom_rules = sorted(
            custom_rules or [], key=lambda rule: rule.priority, reverse=True
        )
        self.metrics = ImageValidationMetrics()
        self._lock = threading.Lock()

    def validate(self, value: Any, field_name: str = "image_url") -> ValidationResult:
        start = time.perf_counter()
        result = super().validate(value, field_name)
        if self.enable_metrics:
            self._record(result, time.perf_counter() - start)
        logger.debug(
            f"Image validation: {value!r} -> {'VALID' if result else 'INVALID'}"
            + (f" ({result.reason})" if result.reason else "")
        )
        return result

    def is_valid_image_url(self, url: Any) -> bool:
        return self.validate(url).is_valid

    def validate_batch(self, urls: Collection[Any]) -> list[ValidationResult]:
        return [self.validate(url) for url in urls]

    def _validate_value(self, value: Any, field_name: str) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failure(
                f"{field_name} must be a string", value, "empty_or_invalid_input"
            )

        url = value.strip()
        if len(url) > self.max_url_length:
            return ValidationResult.failure(
                f"{field_name} exceeds maximum length of {self.max_url_length}",
                url,
                "url_too_long",
            )

        protocol = self._detect_protocol(url)
        if protocol is None:
            return ValidationResult.failure(
                f"{field_name} has an invalid URL format", url, "invalid_url_format"
            )
        if protocol == "relative" or protocol not in self.allowed_protocols:
            return ValidationResult.failure(
                f"Protocol '{protocol}' is not allowed. "
                f"Allowed: {', '.join(sorted(self.allowed_protocols))}",
                url,
                "unsupported_protocol",
            )

        special_case = self._check_special_cases(url)
        if special_case is not None:
            return special_case

        image_format = self._detect_format(url)
        if (
            self.strict_mode
            and image_format is not None
            and image_format not in self.allowed_formats
        ):
            return ValidationResult.failure(
                f"Image format '{image_format}' is not supported",
                url,
                "unsupported_format",
            )

        for rule in self.custom_rules:
            try:
                passed = rule.validator(url)
            except Exception as e:
                return ValidationResult.failure(
                    f"Custom rule '{rule.name}' raised: {e}", url, rule.name
                )
            if not passed:
                return ValidationResult.failure(rule.error_message, url, rule.name)

        return ValidationResult.success(url)

    @staticmethod
    def _detect_protocol(url: str) -> str | None:
        if url.startswith("data:"):
            return "data"
        if url.startswith("//"):
            return "https"
        if url.startswith("/"):
            return "relative"

        parsed = urllib.parse.urlparse(url)
        if not parsed.scheme:
            return None
        if parsed.scheme in ("http", "https") and not parsed.netloc:
            return None
        return parsed.scheme.lower()

    def _check_special_cases(self, url: str) -> ValidationResult | None:
        if url.startswith(EMPTY_SVG_DATA_URL):
            return ValidationResult.failure(
                "Empty SVG data URL detected", url, "empty_svg_data_url"
            )

        if url.startswith("data:") and len(url) < self.min_data_url_length:
            return ValidationResult.failure(
                f"Data URL too short ({len(url)} < {self.min_data_url_length})",
                url,
                "data_url_too_short",
            )

        if url.startswith("data:image/") and "base64," in url:
            payload = url.split("base64,", 1)[1]
            if len(payload) < IMAGE_MIN_BASE64_LENGTH:
                return ValidationResult.failure(
                    "Invalid or empty base64 data", url, "invalid_base64_data"
                )

        return None

    @staticmethod
    def _detect_format(url: str) -> str | None:
        if url.startswith("data:image/"):
            match = re.match(r"data:image/([^;,]+)", url)
        else:
            match = re.search(r"\.([a-zA-Z0-9]+)(?:[?#]|$)", url)
        return match.group(1).lower() if match else None

    def _record(self, result: ValidationResult, elapsed: float) -> None:
        with self._lock:
            metrics = self.metrics
            metrics.total_validations += 1
            if result.is_valid:
                metrics.valid_count += 1
                url = result.value
                protocol = self._detect_protocol(url)
                if protocol:
                    metrics.protocol_distribution[protocol] += 1
                image_format = self._detect_format(url)
                if image_format:
                    metrics.format_distribution[image_format] += 1
            else:
                metrics.invalid_count += 1
                metrics.common_errors[result.reason or "invalid"] += 1

            # Running average over all validations
            metrics.average_validation_time = (
                metrics.average_validation_time * (metrics.total_validations - 1)
                + elapsed
            ) / metrics.total_validations

    def reset_metrics(self) -> None:
        with self._lock:
            self.metrics = ImageValidationMetrics()


# Convenience factory functions for common validation patterns
def positive_integer(max_value: int | None = None) -> NumericValidator:
    """Create a validator for positive integers."""
    return NumericValidator(min_value=1, max_value=max_value, integer_only=True)


def non_empty_list(item_validator: BaseValidator | None = None) -> CollectionValidator:
    """Create a validator for non-empty lists."""
    return CollectionValidator(min_length=1, item_validator=item_validator)


def selector_chain_validator() -> CollectionValidator:
    """Create a validator for ordered, non-empty lists of non-empty selectors."""
    return non_empty_list(
        StringValidator(
            min_length=1,
            error_message="selector entries must be non-empty strings",
        )
    )


_SELECTOR_CHAIN = selector_chain_validator()


def validate_and_raise(
    validator: BaseValidator, value: Any, field_name: str = "value"
) -> Any:
    """
    Validate a value and raise ValidationError if invalid.

    Args:
        validator: Validator to use
        value: Value to validate
        field_name: Name of the field being validated

    Returns:
        Validated value (possibly transformed)

    Raises:
        ValidationError: If validation fails
    """
    result = validator.validate(value, field_name)
    if not result.is_valid:
        raise ValidationError(result.error_message or "Validation failed")
    return result.value


def validate_selector_chain(selectors: Any) -> tuple[str, ...]:
    """Validate a selector chain and return an immutable, stripped copy."""
    return tuple(validate_and_raise(_SELECTOR_CHAIN, selectors, "selectors"))
