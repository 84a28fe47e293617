"""
Shared-library loader for the CUDA runtime and cuDNN.

This module centralizes the logic for locating and loading the two native
libraries the cuDNN normalization backend binds to via `ctypes`:

- the CUDA runtime (``cudart``) for allocation, copies and synchronization
- cuDNN for descriptor derivation and the batch-normalization primitive

Resolution policy
-----------------
For each library, candidates are tried in order and the first one that loads
wins:

1. An explicit path from the environment (``GPUNORM_CUDART_LIB`` /
   ``GPUNORM_CUDNN_LIB``). If set, this path always wins and no search occurs.
2. Platform-specific file names inside the toolkit roots named by
   ``CUDA_PATH`` / ``CUDNN_PATH`` (``bin`` on Windows, ``lib64`` and ``lib``
   elsewhere).
3. Whatever ``ctypes.util.find_library`` resolves.
4. Bare platform-specific file names, left to the system loader.

Both loaders are cached, so each library is loaded at most once per process.

Windows-specific considerations
-------------------------------
Dependent DLL discovery is restricted on Python 3.8+. The toolkit ``bin``
directories are registered with ``os.add_dll_directory`` before loading, and
the returned handles are kept alive on the loaded library object.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

_CUDART_NAMES = {
    "win": (
        "cudart64_12.dll",
        "cudart64_110.dll",
        "cudart64_102.dll",
        "cudart64_101.dll",
        "cudart64_100.dll",
    ),
    "posix": (
        "libcudart.so",
        "libcudart.so.12",
        "libcudart.so.11.0",
        "libcudart.so.10.2",
        "libcudart.so.10.1",
        "libcudart.so.10.0",
    ),
}

_CUDNN_NAMES = {
    "win": ("cudnn64_9.dll", "cudnn64_8.dll", "cudnn64_7.dll"),
    "posix": ("libcudnn.so", "libcudnn.so.9", "libcudnn.so.8", "libcudnn.so.7"),
}


def _platform_key() -> str:
    return "win" if sys.platform.startswith("win") else "posix"


def _search_dirs(root_env: str) -> list[Path]:
    """
    Directories under the toolkit root named by `root_env` that may hold
    shared libraries on this platform.
    """
    root = os.environ.get(root_env, "")
    if not root:
        return []
    subdirs = ("bin",) if _platform_key() == "win" else ("lib64", "lib")
    return [Path(root) / s for s in subdirs if (Path(root) / s).is_dir()]


def _candidates(
    *, explicit_env: str, root_envs: tuple[str, ...], names: dict, find_name: str
) -> list[str]:
    """
    Ordered list of library paths/names to try for one library.
    """
    explicit = os.environ.get(explicit_env, "")
    if explicit:
        return [explicit]

    out: list[str] = []
    platform_names = names[_platform_key()]
    for env in root_envs:
        for d in _search_dirs(env):
            out.extend(str(d / n) for n in platform_names if (d / n).exists())

    found = ctypes.util.find_library(find_name)
    if found:
        out.append(found)

    out.extend(platform_names)
    return out


def _register_dll_dirs(root_envs: tuple[str, ...]) -> list:
    handles = []
    if _platform_key() == "win" and hasattr(os, "add_dll_directory"):
        for env in root_envs:
            for d in _search_dirs(env):
                handles.append(os.add_dll_directory(str(d)))
    return handles


def _load_first(
    label: str, candidates: list[str], root_envs: tuple[str, ...]
) -> ctypes.CDLL:
    """
    Load the first loadable candidate.

    Raises
    ------
    OSError
        If no candidate can be loaded; the message lists every attempt.
    """
    handles = _register_dll_dirs(root_envs)

    errors: list[str] = []
    for c in candidates:
        try:
            lib = ctypes.CDLL(c)
        except OSError as e:
            errors.append(f"- {c} (failed to load: {e})")
            continue
        setattr(lib, "_gpunorm_dll_dir_handles", handles)
        return lib

    raise OSError(f"Failed to load the {label} library. Tried:\n" + "\n".join(errors))


@lru_cache(maxsize=1)
def load_cudart(lib_path: Optional[str] = None) -> ctypes.CDLL:
    """
    Load and cache the CUDA runtime library.

    Parameters
    ----------
    lib_path : Optional[str]
        Exact library to load. Overrides every other resolution step.

    Returns
    -------
    ctypes.CDLL
        Loaded CUDA runtime handle.

    Raises
    ------
    OSError
        If no candidate library could be loaded.
    """
    roots = ("CUDA_PATH",)
    if lib_path is not None:
        return _load_first("CUDA runtime", [str(Path(lib_path).resolve())], roots)
    return _load_first(
        "CUDA runtime",
        _candidates(
            explicit_env="GPUNORM_CUDART_LIB",
            root_envs=roots,
            names=_CUDART_NAMES,
            find_name="cudart",
        ),
        roots,
    )


@lru_cache(maxsize=1)
def load_cudnn(lib_path: Optional[str] = None) -> ctypes.CDLL:
    """
    Load and cache the cuDNN library.

    Parameters
    ----------
    lib_path : Optional[str]
        Exact library to load. Overrides every other resolution step.

    Returns
    -------
    ctypes.CDLL
        Loaded cuDNN handle.

    Raises
    ------
    OSError
        If no candidate library could be loaded.
    """
    roots = ("CUDNN_PATH", "CUDA_PATH")
    if lib_path is not None:
        return _load_first("cuDNN", [str(Path(lib_path).resolve())], roots)
    return _load_first(
        "cuDNN",
        _candidates(
            explicit_env="GPUNORM_CUDNN_LIB",
            root_envs=roots,
            names=_CUDNN_NAMES,
            find_name="cudnn",
        ),
        roots,
    )
