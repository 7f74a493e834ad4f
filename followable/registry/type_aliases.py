class TypeAliasResolver:
    """Maps short type aliases to canonical type names and back.

    An empty mapping means identity: every token resolves to itself.
    Resolution never fails; a token nobody knows comes back unchanged and
    simply matches no entity model downstream.
    """

    def __init__(self, aliases=None):
        self._canonical_by_alias = dict(aliases or {})
        self._alias_by_canonical = {
            canonical: alias
            for alias, canonical in self._canonical_by_alias.items()
        }

    @classmethod
    def from_config(cls, config):
        return cls(config.get("FOLLOW_TYPE_ALIASES") or {})

    @property
    def aliases(self) -> dict:
        return dict(self._canonical_by_alias)

    def resolve_alias(self, token: str) -> str:
        return self._alias_by_canonical.get(token, token)

    def resolve_canonical(self, token: str) -> str:
        return self._canonical_by_alias.get(token, token)

    def stored_type(self, token: str) -> str:
        # the value written to and matched against the edge table
        return self.resolve_alias(self.resolve_canonical(token))
