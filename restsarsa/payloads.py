"""
Payload Generator

Builds request bodies for the four record types of the service under test from
small schema descriptions. A body starts valid and is then mutated on the
focused attribute(s) according to the selected mutation strategy, with the
intensity dial scaling string lengths and numeric magnitudes.

All randomness comes from the ``numpy.random.Generator`` handed in, so a seeded
run draws payloads in a reproducible order.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .strategy import Resource, Field, MutationStrategy, Intensity


logger = logging.getLogger(__name__)


ALPHA = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
UNICODE = "äöüßéñ中文日本語한국어😀​"

INT_MAX = 2**31 - 1
LONG_MAX = 2**63 - 1
DOUBLE_MAX = 1.7976931348623157e308

INJECTIONS = [
    "'; DROP TABLE {table}; --",
    "1' OR '1'='1",
    "<script>alert('xss')</script>",
    "../../../etc/passwd",
    "${7*7}",
    "{{constructor.constructor('return this')()}}",
]

UNKNOWN_ATTRIBUTES = {'unknown': 'extra', 'hack': True}

# Attribute schemas per record type; 'ref' attributes link to a parent record
RESOURCE_SCHEMAS: Dict[Resource, Dict[str, Dict[str, Any]]] = {
    Resource.ITEMS: {
        'name': {'type': 'string', 'minLength': 3},
        'description': {'type': 'string', 'minLength': 5},
        'quantity': {'type': 'integer', 'minimum': 1, 'maximum': 1000},
    },
    Resource.PRICES: {
        'item': {'type': 'ref', 'resource': Resource.ITEMS},
        'price': {'type': 'number', 'minimum': 10.0, 'maximum': 1000.0},
    },
    Resource.DISCOUNTS: {
        'price': {'type': 'ref', 'resource': Resource.PRICES},
        'discount': {'type': 'number', 'minimum': 0.0, 'maximum': 50.0},
    },
    Resource.POINTS: {
        'discount': {'type': 'ref', 'resource': Resource.DISCOUNTS},
        'points': {'type': 'integer', 'minimum': 1, 'maximum': 1000},
    },
}

# Client-supplied identifier, only present in a body when it is the focus
ID_SCHEMA = {'type': 'integer', 'minimum': 1, 'maximum': 1000}

FIELD_ATTRIBUTES = {
    Field.NAME: 'name',
    Field.QUANTITY: 'quantity',
    Field.DESCRIPTION: 'description',
    Field.PRICE: 'price',
    Field.ITEM_ID: 'item',
    Field.DISCOUNT_ID: 'discount',
    Field.DISCOUNT: 'discount',
    Field.POINTS_ID: 'id',
    Field.POINTS: 'points',
}


class PayloadGenerator:
    """Strategy-aware JSON body generator."""

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.known_ids: Dict[Resource, Optional[str]] = {}

    def bind_identifier(self, resource: Resource, identifier: Optional[str]) -> None:
        """Remember (or forget) a live identifier used to link child records."""
        self.known_ids[resource] = identifier

    def generate(self, resource: Resource, field: Field, strategy: MutationStrategy,
                 intensity: Intensity) -> str:
        """
        Produce a request body.

        Args:
            resource: Record type the body is for (NONE is treated as ITEMS)
            field: Focused attribute(s)
            strategy: Mutation strategy (NONE is treated as VALID)
            intensity: Mutation intensity (NONE is treated as MILD)

        Returns:
            The body text, which is not guaranteed to be valid JSON
        """
        resource = Resource.ITEMS if resource == Resource.NONE else resource
        field = Field.ALL if field == Field.NONE else field
        strategy = MutationStrategy.VALID if strategy == MutationStrategy.NONE else strategy
        intensity = Intensity.MILD if intensity == Intensity.NONE else intensity

        schema = RESOURCE_SCHEMAS[resource]
        body = {name: self._valid_value(attr, intensity) for name, attr in schema.items()}
        targets = self._target_attributes(schema, field)

        if field == Field.POINTS_ID:
            body['id'] = self._valid_value(ID_SCHEMA, intensity)
        if field == Field.UNKNOWN:
            body.update(UNKNOWN_ATTRIBUTES)

        if strategy == MutationStrategy.STRUCTURE:
            return self._restructure(body, targets, field, intensity)

        mutate = _MUTATORS.get(strategy)
        if mutate is not None:
            table = resource.path
            for name in targets:
                body[name] = mutate(self, schema.get(name, ID_SCHEMA), intensity, table)

        return json.dumps(body, ensure_ascii=False)

    # ------------------------------------------------------------------
    # Targeting
    # ------------------------------------------------------------------

    def _target_attributes(self, schema: Dict[str, Dict[str, Any]], field: Field) -> List[str]:
        if field == Field.ALL:
            return list(schema)
        attribute = FIELD_ATTRIBUTES.get(field)
        if attribute == 'id' or attribute in schema:
            return [attribute]
        # Focus not applicable to this record type: mutate one attribute at random
        names = list(schema)
        return [names[self.rng.integers(len(names))]]

    # ------------------------------------------------------------------
    # Value generation
    # ------------------------------------------------------------------

    def _valid_value(self, attr: Dict[str, Any], intensity: Intensity) -> Any:
        attr_type = attr['type']
        if attr_type == 'string':
            return self._random_string(ALPHA, attr.get('minLength', 1), self._string_length(intensity))
        if attr_type == 'integer':
            return int(self.rng.integers(attr['minimum'], attr['maximum'] + 1))
        if attr_type == 'number':
            return round(float(self.rng.uniform(attr['minimum'], attr['maximum'])), 2)
        if attr_type == 'ref':
            parent_id = self.known_ids.get(attr['resource'])
            if parent_id is None:
                return {'id': int(self.rng.integers(1, 1001))}
            return {'id': int(parent_id) if parent_id.isdigit() else parent_id}
        raise ValueError(f"Unknown attribute type: {attr_type}")

    def _string_length(self, intensity: Intensity) -> int:
        if intensity == Intensity.AGGRESSIVE:
            return 100 + int(self.rng.integers(1000))
        if intensity == Intensity.MODERATE:
            return 10 + int(self.rng.integers(50))
        return 3 + int(self.rng.integers(10))

    def _magnitude(self, intensity: Intensity) -> int:
        if intensity == Intensity.AGGRESSIVE:
            return 1 + int(self.rng.integers(INT_MAX // 2))
        if intensity == Intensity.MODERATE:
            return 1 + int(self.rng.integers(10000))
        return 1 + int(self.rng.integers(100))

    def _random_string(self, pool: str, min_len: int, max_len: int) -> str:
        max_len = max(max_len, min_len)
        length = int(self.rng.integers(min_len, max_len + 1))
        chars = self.rng.choice(list(pool), size=length)
        return ''.join(chars)

    # ------------------------------------------------------------------
    # Mutators: (schema, intensity, table) -> mutated value
    # ------------------------------------------------------------------

    def _null(self, attr, intensity, table):
        return None

    def _negative(self, attr, intensity, table):
        magnitude = self._magnitude(intensity)
        if attr['type'] == 'integer':
            return -(int(self.rng.integers(magnitude)) + 1)
        if attr['type'] == 'number':
            return -round(float(self.rng.random()) * magnitude + 1, 2)
        if attr['type'] == 'ref':
            return {'id': -1}
        return ""

    def _boundary(self, attr, intensity, table):
        level = int(intensity) - 1
        if attr['type'] == 'integer':
            return [0, INT_MAX // 2, INT_MAX][level]
        if attr['type'] == 'number':
            return [0, DOUBLE_MAX / 2, DOUBLE_MAX][level]
        if attr['type'] == 'ref':
            return {'id': [0, INT_MAX, LONG_MAX][level]}
        if level == 0:
            return ""
        if level == 1:
            return self._random_string(ALPHA, 100, 500)
        return self._random_string(ALPHA, 5000, 10000)

    def _injection(self, attr, intensity, table):
        inject = INJECTIONS[self.rng.integers(len(INJECTIONS))].replace('{table}', table)
        if attr['type'] == 'ref':
            return {'id': inject}
        return inject

    def _type_confuse(self, attr, intensity, table):
        if intensity == Intensity.AGGRESSIVE:
            # Containers where scalars are expected
            if attr['type'] == 'string':
                return ["array"]
            if attr['type'] == 'ref':
                return [1, 2, 3]
            return {'value': self._valid_value(attr, Intensity.MILD)}
        if attr['type'] == 'string':
            return 12345
        if attr['type'] == 'ref':
            return "not an object"
        return "not a number"

    def _encoding(self, attr, intensity, table):
        if attr['type'] != 'string':
            return self._valid_value(attr, intensity)
        return self._random_string(ALPHA + UNICODE, 5, max(5, self._string_length(intensity)))

    def _restructure(self, body: Dict[str, Any], targets: List[str], field: Field,
                     intensity: Intensity) -> str:
        if field == Field.ALL:
            body = {}
        elif field != Field.UNKNOWN:
            for name in targets:
                body.pop(name, None)
        text = json.dumps(body, ensure_ascii=False)
        if intensity == Intensity.AGGRESSIVE:
            # Truncated document
            return text[:max(1, len(text) // 2)]
        return text


_MUTATORS = {
    MutationStrategy.NULL_INJECT: PayloadGenerator._null,
    MutationStrategy.NEGATIVE: PayloadGenerator._negative,
    MutationStrategy.BOUNDARY: PayloadGenerator._boundary,
    MutationStrategy.INJECTION: PayloadGenerator._injection,
    MutationStrategy.TYPE_CONFUSE: PayloadGenerator._type_confuse,
    MutationStrategy.ENCODING: PayloadGenerator._encoding,
}
