"""Unbound variable analysis for expression trees."""

from calctree.pure.expr import Assignment, BinaryOperation, UnaryOperation, UnboundVariable


def unbound_variables(expr):
    """Returns the set of names of UnboundVariable leaves in expr. Literals read from bound variables and assignment
    targets are never unbound, so they are not visited.
    """
    if isinstance(expr, UnboundVariable):
        return {expr.name}

    unbound = set()
    if isinstance(expr, BinaryOperation):
        unbound |= unbound_variables(expr.lhs)
        unbound |= unbound_variables(expr.rhs)
    elif isinstance(expr, (UnaryOperation, Assignment)):
        unbound |= unbound_variables(expr.expr)
    return unbound
