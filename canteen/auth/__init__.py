from .principal import AdminPrincipal, Principal, UserPrincipal

__all__ = ["AdminPrincipal", "Principal", "UserPrincipal"]
