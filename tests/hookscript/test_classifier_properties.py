"""Property-based tests for event classification.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import json

from hypothesis import assume, given, settings, strategies as st

from hookscript.script.builtins import resolve_field
from hookscript.webhook.classifier import create_event_classifier
from hookscript.webhook.payloads import EVENT_PAYLOADS


# =============================================================================
# Strategies
# =============================================================================

json_scalars = (
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**53), max_value=2**53)
    | st.text(max_size=20)
)

json_values = st.recursive(
    json_scalars,
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=12,
)

labels = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"), min_size=1, max_size=30
)


@st.composite
def push_payload(draw: st.DrawFn) -> dict:
    return {
        "ref": draw(st.text(max_size=30)),
        "pusher": {"email": draw(st.emails())},
        "repository": {"name": draw(st.text(min_size=1, max_size=30))},
    }


# =============================================================================
# Properties
# =============================================================================


class TestClassifierProperties:

    @given(label=st.sampled_from(sorted(EVENT_PAYLOADS)))
    @settings(max_examples=100)
    def test_known_label_name_preserved(self, label):
        event = create_event_classifier().classify(label, b"{}")

        assert event.name == label

    @given(payload=push_payload())
    @settings(max_examples=100)
    def test_push_fields_are_navigable(self, payload):
        event = create_event_classifier().classify("push", json.dumps(payload).encode())

        pusher = resolve_field(event.payload, "pusher")
        repository = resolve_field(event.payload, "repository")
        assert resolve_field(pusher, "email") == payload["pusher"]["email"]
        assert resolve_field(repository, "name") == payload["repository"]["name"]

    @given(label=labels, document=json_values)
    @settings(max_examples=100)
    def test_unknown_label_keeps_generic_tree(self, label, document):
        assume(label not in EVENT_PAYLOADS)

        event = create_event_classifier().classify(label, json.dumps(document).encode())

        assert event.name == label
        assert event.payload == document

    @given(
        label=labels,
        document=st.dictionaries(st.text(max_size=8), json_values, max_size=4),
        key=st.text(max_size=8),
    )
    @settings(max_examples=100)
    def test_unknown_label_field_access_never_raises(self, label, document, key):
        assume(label not in EVENT_PAYLOADS)

        event = create_event_classifier().classify(label, json.dumps(document).encode())

        assert resolve_field(event.payload, key) == document.get(key)
