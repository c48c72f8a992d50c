# -*- coding: utf-8 -*-
"""
Error kinds raised by the multilayer Mie solver.

All of them derive from MieError. DomainError is also a ValueError, so code
written against the plain ValueError checks of the functional API keeps
working.
"""

class MieError(Exception):
    '''Base class for every error raised by layermie'''


class DomainError(MieError, ValueError):
    '''
    Invalid physical or geometrical input: negative widths, mismatched
    width/index lists, a zero argument to a special function, a field point
    at the origin, ...
    '''


class ConvergenceError(MieError, ArithmeticError):
    '''
    A continued fraction or series did not converge within its iteration
    budget.
    '''


class ResourceLimitError(MieError, RuntimeError):
    '''
    The requested or estimated number of multipole terms exceeds the
    internal ceiling.
    '''
