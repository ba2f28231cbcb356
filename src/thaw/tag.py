"""The ``@generate_mutable`` tag.

At runtime the decorator only records its options on the class; all of
the work happens when ``thaw generate`` reads the source.  It can be
applied bare or with options::

    from dataclasses import dataclass

    from thaw import generate_mutable
    from app.mutable_settings import MutableSettings


    @generate_mutable(use_fancy_method_names=True)
    @dataclass(frozen=True)
    class Settings(MutableSettings.Source):
        name: str
        retries: int
"""
from __future__ import annotations

from typing import Callable, TypeVar, overload

T = TypeVar("T", bound=type)

OPTIONS_ATTRIBUTE = "__thaw_options__"


@overload
def generate_mutable(cls: T) -> T: ...


@overload
def generate_mutable(
    *,
    encapsulate_fields: bool = True,
    use_fancy_method_names: bool = False,
) -> Callable[[T], T]: ...


def generate_mutable(
    cls: T | None = None,
    *,
    encapsulate_fields: bool = True,
    use_fancy_method_names: bool = False,
) -> T | Callable[[T], T]:
    """Mark a frozen dataclass for mutable companion generation.

    Parameters
    ----------
    encapsulate_fields:
        If ``True`` (default) the companion stores private fields behind
        accessors; if ``False`` it exposes public fields and no accessors.
    use_fancy_method_names:
        If ``True`` accessors are ``get_<name>``/``set_<name>`` methods
        instead of a ``<name>`` property.
    """
    options = {
        "encapsulate_fields": encapsulate_fields,
        "use_fancy_method_names": use_fancy_method_names,
    }

    def mark(target: T) -> T:
        setattr(target, OPTIONS_ATTRIBUTE, dict(options))
        return target

    if cls is not None:
        return mark(cls)
    return mark
