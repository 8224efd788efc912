"""formwright — declarative form construction, conditional logic and submission lifecycle."""

from formwright.builder import FieldBuilder, FormBuilder, RepeaterBuilder, create_form
from formwright.domain.conditions import (
    all_of,
    any_of,
    equals,
    is_checked,
    is_not_checked,
    not_,
    not_equals,
    one_of,
)
from formwright.domain.configuration import FormConfiguration
from formwright.domain.fields import FieldDescriptor, FieldRegistry
from formwright.domain.lifecycle import LifecycleEvent, LifecycleState
from formwright.services.form import Form
from formwright.services.request import FormRequest

__version__ = "0.1.0"

__all__ = [
    "FieldBuilder",
    "FieldDescriptor",
    "FieldRegistry",
    "Form",
    "FormBuilder",
    "FormConfiguration",
    "FormRequest",
    "LifecycleEvent",
    "LifecycleState",
    "RepeaterBuilder",
    "__version__",
    "all_of",
    "any_of",
    "create_form",
    "equals",
    "is_checked",
    "is_not_checked",
    "not_",
    "not_equals",
    "one_of",
]
