"""
Wire models for matrices, polynomial functions and search keys (pydantic).

- Bit vectors travel as marshal_bitvector strings (Base64 framing).
- Functions carry an "@class" discriminator: "plain" or "parameterized"; the
  parameterized variant nests its pipeline functions by name.
- Private keys use leftMatrix / rightMatrix, sharing keys documentKey, bridge keys bridge.
"""

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from gf2 import (
    BitMatrix,
    BitVector,
    ParameterizedPolynomialFunction,
    PolynomialFunction,
    marshal_bitvector,
    unmarshal_bitvector,
)

from .config import SearchConfiguration
from .search_keys import LEFT_SQUARING_MATRIX, RIGHT_SQUARING_MATRIX, EncryptedSearchPrivateKey
from .sharing import BRIDGE, DOCUMENT_KEY, EncryptedSearchBridgeKey, EncryptedSearchSharingKey


def _marshal_rows(rows: List[BitVector]) -> List[str]:
    return [marshal_bitvector(r) for r in rows]


def _unmarshal_rows(rows: List[str]) -> List[BitVector]:
    return [unmarshal_bitvector(r) for r in rows]


class BitMatrixModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cols: int = Field(ge=0)
    rows: List[str]

    @classmethod
    def from_matrix(cls, matrix: BitMatrix) -> "BitMatrixModel":
        return cls(cols=matrix.cols(), rows=_marshal_rows(matrix.get_rows()))

    def to_matrix(self) -> BitMatrix:
        rows = _unmarshal_rows(self.rows)
        if not rows:
            return BitMatrix.zeros(0, self.cols)
        if any(len(r) != self.cols for r in rows):
            raise ValueError(f"Matrix rows must all have {self.cols} bits")
        return BitMatrix.from_rows(rows)


class _FunctionFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_length: int = Field(alias="inputLength", ge=0)
    output_length: int = Field(alias="outputLength", ge=0)
    monomials: List[str]
    contributions: List[str]


class PlainFunctionModel(_FunctionFields):
    kind: Literal["plain"] = Field(default="plain", alias="@class")


class ParameterizedFunctionModel(_FunctionFields):
    kind: Literal["parameterized"] = Field(default="parameterized", alias="@class")
    pipelines: Dict[str, "FunctionModel"]


FunctionModel = Annotated[
    Union[PlainFunctionModel, ParameterizedFunctionModel],
    Field(discriminator="kind"),
]

ParameterizedFunctionModel.model_rebuild()

_function_adapter = TypeAdapter(FunctionModel)


def function_to_model(f: PolynomialFunction) -> Union[PlainFunctionModel, ParameterizedFunctionModel]:
    fields = dict(
        input_length=f.input_length,
        output_length=f.output_length,
        monomials=_marshal_rows(f.get_monomials()),
        contributions=_marshal_rows(f.get_contributions()),
    )
    if f.kind == "parameterized":
        pipelines = {name: function_to_model(p) for name, p in f.get_pipelines().items()}
        return ParameterizedFunctionModel(**fields, pipelines=pipelines)
    return PlainFunctionModel(**fields)


def model_to_function(model: Union[PlainFunctionModel, ParameterizedFunctionModel]) -> PolynomialFunction:
    monomials = _unmarshal_rows(model.monomials)
    contributions = _unmarshal_rows(model.contributions)
    if model.kind == "parameterized":
        pipelines = {name: model_to_function(p) for name, p in model.pipelines.items()}
        return ParameterizedPolynomialFunction(
            model.input_length, model.output_length, monomials, contributions, pipelines
        )
    return PolynomialFunction(model.input_length, model.output_length, monomials, contributions)


def function_to_json(f: PolynomialFunction) -> str:
    return function_to_model(f).model_dump_json(by_alias=True)


def function_from_json(data: Union[str, bytes]) -> PolynomialFunction:
    return model_to_function(_function_adapter.validate_json(data))


class PrivateKeyModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    left_matrix: BitMatrixModel = Field(alias=LEFT_SQUARING_MATRIX)
    right_matrix: BitMatrixModel = Field(alias=RIGHT_SQUARING_MATRIX)

    @classmethod
    def from_key(cls, key: EncryptedSearchPrivateKey) -> "PrivateKeyModel":
        return cls(
            left_matrix=BitMatrixModel.from_matrix(key.left_squaring_matrix),
            right_matrix=BitMatrixModel.from_matrix(key.right_squaring_matrix),
        )

    def to_key(self, config: Optional[SearchConfiguration] = None) -> EncryptedSearchPrivateKey:
        return EncryptedSearchPrivateKey(self.left_matrix.to_matrix(), self.right_matrix.to_matrix(), config)


class SharingKeyModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_key: BitMatrixModel = Field(alias=DOCUMENT_KEY)

    @classmethod
    def from_key(cls, key: EncryptedSearchSharingKey) -> "SharingKeyModel":
        return cls(document_key=BitMatrixModel.from_matrix(key.document_key))

    def to_key(self) -> EncryptedSearchSharingKey:
        return EncryptedSearchSharingKey(self.document_key.to_matrix())


class BridgeKeyModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bridge: BitMatrixModel = Field(alias=BRIDGE)

    @classmethod
    def from_key(cls, key: EncryptedSearchBridgeKey) -> "BridgeKeyModel":
        return cls(bridge=BitMatrixModel.from_matrix(key.bridge))

    def to_key(self) -> EncryptedSearchBridgeKey:
        return EncryptedSearchBridgeKey.from_bridge(self.bridge.to_matrix())
