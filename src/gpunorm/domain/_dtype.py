"""
Element-type rules of the batch-normalization primitive.

The domain layer refers to element types by their canonical NumPy names
("float16", "float32", "float64") so that it stays free of NumPy imports;
infrastructure code converts with ``np.dtype(name)`` / ``np.dtype(x).name``.
"""

from __future__ import annotations

from ._errors import DtypeError

#: Element types the primitive accepts for the normalized tensor.
SUPPORTED_INPUT_DTYPES: tuple[str, ...] = ("float16", "float32", "float64")

#: Element types the executor accepts for derived parameter descriptors.
#: Half-precision parameters are not supported yet.
SUPPORTED_PARAM_DTYPES: tuple[str, ...] = ("float32", "float64")

# Reduced-precision inputs keep full-precision parameters.
_PARAM_DTYPE_FOR_INPUT = {
    "float16": "float32",
    "float32": "float32",
    "float64": "float64",
}


def check_input_dtype(name: str) -> str:
    """
    Ensure `name` is an element type the primitive can describe.

    Raises
    ------
    DtypeError
        If the dtype has no counterpart in the primitive.
    """
    if name not in SUPPORTED_INPUT_DTYPES:
        raise DtypeError(
            f"Unsupported dtype for batch normalization: {name}. "
            f"Expected one of {SUPPORTED_INPUT_DTYPES}."
        )
    return name


def check_param_dtype(name: str) -> str:
    """
    Ensure a derived parameter dtype is supported by the executor.

    Raises
    ------
    DtypeError
        If the derived dtype is not supported yet.
    """
    if name not in SUPPORTED_PARAM_DTYPES:
        raise DtypeError(f"Unsupported batch normalization parameter dtype: {name}")
    return name


def bn_param_dtype_name(input_dtype: str) -> str:
    """
    Parameter dtype the primitive requires for a given input dtype.

    Parameters
    ----------
    input_dtype : str
        Canonical name of the normalized tensor's dtype.

    Returns
    -------
    str
        Canonical name of the scale/shift/statistics dtype.

    Raises
    ------
    DtypeError
        If `input_dtype` is not supported.
    """
    return check_param_dtype(_PARAM_DTYPE_FOR_INPUT[check_input_dtype(input_dtype)])
