"""
weft Core - The trait composition engine.

This package contains:
- Policy: conflict predicates deciding whether a name may be touched
- Composer: strategies combining new implementations with prior ones
- Unit: TraitUnit and its define/override/prepend/append constructors
- Capability: tags and the registry behind capability queries
- Pipeline: left-to-right composition of transformers
"""

__all__ = []
