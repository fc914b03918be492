from basix import ElementFamily, LagrangeVariant

from fecore.globals import lagrange_variant_name


def family_by_name(family):
    # scalar conforming spaces only
    families = {
        "Lagrange": ElementFamily.P,
        "P": ElementFamily.P,
    }
    if family not in families:
        raise ValueError("Element family not available: %r" % (family,))
    return families[family]


def basis_variant():
    return getattr(LagrangeVariant, lagrange_variant_name)
