# -*- coding: utf-8 -*-
"""
Special functions for the multilayer Mie problem: logarithmic derivatives of
Riccati-Bessel functions, their ratios, and spherical Bessel/Hankel
functions of complex argument.

Riccati-Bessel conventions follow Bohren & Huffman:
    psi_n(z) = z*j_n(z),   xi_n(z) = z*h1_n(z),
    D1_n(z) = psi_n'(z)/psi_n(z),   D3_n(z) = xi_n'(z)/xi_n(z)

References
----------
- Lentz, W. J. (1976). Generating Bessel functions in Mie scattering
    calculations using continued fractions. Appl. Opt. 15(3), 668.
- Mackowski, D. W.; Altenkirch, R. A.; Menguc, M. P. (1990). Internal
    absorption cross sections in a stratified sphere. Appl. Opt. 29, 1551.
- Yang, W. (2003). Improved recursive algorithm for light scattering by a
    multilayered sphere. Appl. Opt. 42(9), 1710.

"""
import numpy as _np
from .errors import DomainError, ConvergenceError

# default tolerances of the Lentz continued fraction
DEFAULT_EPS1 = 1e-3       # ill-conditioning threshold
DEFAULT_EPS2 = 1e-15      # convergence threshold
DEFAULT_MAX_ITER = 10000  # iteration budget

# below this |Im z|, D3 is recurred directly instead of through psi_n*xi_n
D3_PRODUCT_MIN_IMAG = 1.0

def _check_argument(z):
    '''
    Validate the argument of a special function and return it as complex128
    '''
    z = complex(z)
    if not (_np.isfinite(z.real) and _np.isfinite(z.imag)):
        raise DomainError(f"Special function argument must be finite, got {z}.")
    if z == 0:
        raise DomainError("Special function argument must be non-zero.")
    return _np.complex128(z)

def lentz_dn1(z, n,
              eps1=DEFAULT_EPS1,
              eps2=DEFAULT_EPS2,
              max_iter=DEFAULT_MAX_ITER):
    '''
    Logarithmic derivative D1_n(z) for a single order n, using the continued
    fraction of Lentz (1976) for J_(n-1/2)(z)/J_(n+1/2)(z).

    Parameters
    ----------
    z : complex
        argument
    n : int
        order of the logarithmic derivative
    eps1 : float, optional
        value of a numerator or denominator (relative to its partial term)
        that triggers the two-step ill-conditioning workaround
    eps2 : float, optional
        convergence criterion: stop when the new product differs from 1 by
        less than eps2
    max_iter : int, optional
        maximum number of continued fraction terms

    Returns
    -------
    complex
        D1_n(z)

    Raises
    ------
    ConvergenceError
        if the continued fraction does not converge within max_iter terms
    '''
    z = _check_argument(z)

    def a_i(i):
        return (-1.)**(i + 1)*2.*(n + i - 0.5)/z

    numerator = a_i(2) + 1./a_i(1)
    denominator = a_i(2)
    ratio = a_i(1)*numerator/denominator

    i = 3
    for _ in range(max_iter):
        ai = a_i(i)
        numerator = ai + 1./numerator
        denominator = ai + 1./denominator

        if abs(numerator/ai) < eps1 or abs(denominator/ai) < eps1:
            # ill conditioned: combine two terms at once (Lentz, 1976)
            xi1 = 1. + a_i(i + 1)*numerator
            xi2 = 1. + a_i(i + 1)*denominator
            ratio = ratio*xi1/xi2
            numerator = a_i(i + 2) + numerator/xi1
            denominator = a_i(i + 2) + denominator/xi2
            i += 2

        product = numerator/denominator
        ratio = ratio*product
        i += 1

        if abs(product.real - 1) < eps2 and abs(product.imag) < eps2:
            return ratio - n/z

    raise ConvergenceError(
        f"Continued fraction for D1_{n}({z}) did not converge "
        f"after {max_iter} iterations.")

def log_riccati_bessel(z, nmax, **kwargs):
    '''
    Logarithmic derivatives of the Riccati-Bessel functions psi_n and xi_n
    for orders n = 0..nmax.

    D1_n(z) is obtained by downward recurrence started with the Lentz
    continued fraction at an order nmx = max(nmax, |z|) + 16, above which the
    continued fraction converges quickly. D3_n(z) is obtained by upward
    recurrence of the product psi_n*xi_n (Mackowski et al. 1990, eqs. 63-64)
    or, close to the real axis where psi_n has its zeros, by the upward
    recurrence D3_n = 1/(n/z - D3_(n-1)) - n/z.

    Parameters
    ----------
    z : complex
        argument
    nmax : int
        maximum order
    **kwargs :
        eps1, eps2, max_iter forwarded to lentz_dn1

    Returns
    -------
    d1 : 1D numpy array (size nmax + 1)
        D1_n(z)
    d3 : 1D numpy array (size nmax + 1)
        D3_n(z)
    '''
    z = _check_argument(z)
    nmax = int(nmax)

    # Get D1_n(z) by downwards recurrence
    nmx = int(max(nmax, abs(z))) + 16
    d1 = _np.zeros(nmx + 1, dtype=_np.complex128)
    d1[nmx] = lentz_dn1(z, nmx, **kwargs)
    for i in range(nmx, 0, -1):
        d1[i - 1] = i/z - 1./(d1[i] + i/z)

    # Get D3_n(z) by upwards recurrence
    d3 = _np.zeros(nmax + 1, dtype=_np.complex128)
    d3[0] = 1j
    if abs(z.imag) < D3_PRODUCT_MIN_IMAG:
        # psi_n vanishes on the real axis, recur on xi_n alone
        for i in range(1, nmax + 1):
            d3[i] = 1./(i/z - d3[i - 1]) - i/z
        return d1[:nmax + 1], d3

    psixi = _np.zeros(nmax + 1, dtype=_np.complex128)
    psixi[0] = 0.5*(1. - _np.exp(2j*z))    # = psi_0(z)*xi_0(z)
    for i in range(1, nmax + 1):
        psixi[i] = psixi[i - 1]*(i/z - d1[i - 1])*(i/z - d3[i - 1])
        d3[i] = d1[i] + 1j/psixi[i]

    return d1[:nmax + 1], d3

def _near_zero(d1, z, i):
    '''
    True if psi_(i-1)(z) is close to zero, i.e. the ratio
    psi_(i-1)/psi_i = D1_i + i/z is small
    '''
    return 0 < i < len(d1) and abs(d1[i] + i/z) < 1e-3*abs(i/z)

def psi_xi_ratio(z1, z2, nmax,
                 d1z1=None, d3z1=None,
                 d1z2=None, d3z2=None,
                 **kwargs):
    '''
    Ratio of Riccati-Bessel functions
        Q_n = [psi_n(z1)/xi_n(z1)] / [psi_n(z2)/xi_n(z2)]
    for n = 0..nmax by upward recurrence (Yang 2003, eqs. 33-34). The
    starting value is written so that large imaginary parts do not overflow.

    Where psi_n or psi_(n-1) nearly vanishes at z1 or z2 (real arguments
    close to a zero) the recurrence step is ill-conditioned, and Q_n is
    taken from exponent-scaled psi_n, xi_n instead.

    Logarithmic derivatives are computed if not given.

    Returns
    -------
    1D numpy array (size nmax + 1)
    '''
    z1 = _check_argument(z1)
    z2 = _check_argument(z2)

    if d1z1 is None or d3z1 is None:
        d1z1, d3z1 = log_riccati_bessel(z1, nmax, **kwargs)
    if d1z2 is None or d3z2 is None:
        d1z2, d3z2 = log_riccati_bessel(z2, nmax, **kwargs)

    a1, b1 = z1.real, z1.imag
    a2, b2 = z2.real, z2.imag

    def direct(i):
        psi1, xi1 = riccati_bessel(z1, i, scaled=True, **kwargs)[:2]
        psi2, xi2 = riccati_bessel(z2, i, scaled=True, **kwargs)[:2]
        scale = _np.exp(abs(b1) + b1 - abs(b2) - b2)
        return psi1[i]*xi2[i]/(xi1[i]*psi2[i])*scale

    def degenerate(i):
        return any(_near_zero(d1, z, j) for d1, z in ((d1z1, z1), (d1z2, z2))
                                         for j in (i, i + 1))

    qn = _np.zeros(nmax + 1, dtype=_np.complex128)
    if degenerate(0):
        qn[0] = direct(0)
    else:
        qn[0] = _np.exp(-2.*(b2 - b1))*(_np.exp(-2j*a1) - _np.exp(-2.*b1))/ \
                (_np.exp(-2j*a2) - _np.exp(-2.*b2))

    for i in range(1, nmax + 1):
        if degenerate(i):
            qn[i] = direct(i)
        else:
            qn[i] = qn[i - 1]*((d3z1[i] + i/z1)*(d1z2[i] + i/z2))/ \
                              ((d3z2[i] + i/z2)*(d1z1[i] + i/z1))
    return qn

def riccati_bessel(z, nmax, scaled=False, **kwargs):
    '''
    Riccati-Bessel functions psi_n(z), xi_n(z) and their derivatives for
    n = 0..nmax.

    psi_n is built upwards from psi_0 = sin(z) with the stable ratio
    psi_(n-1)/psi_n = D1_n + n/z, or with the three-term recurrence where
    that ratio is close to zero. xi_n starts from its closed form at
    n = 0, 1 and follows the three-term upward recurrence, which is stable
    for the Hankel function of the first kind.

    Parameters
    ----------
    z : complex
        argument (non-zero)
    nmax : int
        maximum order
    scaled : bool, optional
        if True, return psi_n*exp(-|Im z|) and xi_n*exp(Im z) (and their
        derivatives with the same factors), which do not overflow for large
        imaginary parts. Default False

    Returns
    -------
    psi, xi, dpsi, dxi : 1D numpy arrays (size nmax + 1)
    '''
    z = _check_argument(z)
    d1 = log_riccati_bessel(z, nmax, **kwargs)[0]

    psi = _np.zeros(nmax + 1, dtype=_np.complex128)
    dpsi = _np.zeros(nmax + 1, dtype=_np.complex128)
    if scaled:
        a, b = z.real, z.imag
        ch = (1. + _np.exp(-2.*abs(b)))/2               # cosh(b)*exp(-|b|)
        sh = -_np.sign(b)*_np.expm1(-2.*abs(b))/2       # sinh(b)*exp(-|b|)
        psi[0] = _np.sin(a)*ch + 1j*_np.cos(a)*sh
        dpsi[0] = _np.cos(a)*ch - 1j*_np.sin(a)*sh
    else:
        psi[0] = _np.sin(z)
        dpsi[0] = _np.cos(z)
    for i in range(1, nmax + 1):
        ratio = d1[i] + i/z     # psi_(i-1)/psi_i
        if abs(ratio) < 1e-3*abs(i/z):
            # z is close to a zero of psi_(i-1)
            if i == 1:
                psi[i] = psi[0]/z - dpsi[0]
            else:
                psi[i] = (2*i - 1)/z*psi[i - 1] - psi[i - 2]
        else:
            psi[i] = psi[i - 1]/ratio
        dpsi[i] = psi[i - 1] - i*psi[i]/z

    eiz = _np.exp(1j*z.real) if scaled else _np.exp(1j*z)
    xi = _np.zeros(nmax + 1, dtype=_np.complex128)
    dxi = _np.zeros(nmax + 1, dtype=_np.complex128)
    xi[0] = -1j*eiz
    dxi[0] = eiz
    if nmax > 0:
        xi[1] = -eiz*(1. + 1j/z)
    for i in range(1, nmax):
        xi[i + 1] = (2*i + 1)/z*xi[i] - xi[i - 1]
    for i in range(1, nmax + 1):
        dxi[i] = xi[i - 1] - i*xi[i]/z

    return psi, xi, dpsi, dxi

def spherical_bessel_hankel(z, nmax, **kwargs):
    '''
    Spherical Bessel function j_n(z), spherical Hankel function h1_n(z) and
    their first derivatives for n = 0..nmax.

    Parameters
    ----------
    z : complex
        argument (non-zero)
    nmax : int
        maximum order

    Returns
    -------
    jn, jnp, h1n, h1np : 1D numpy arrays (size nmax + 1)
    '''
    z = _check_argument(z)
    psi, xi, dpsi, dxi = riccati_bessel(z, nmax, **kwargs)

    jn = psi/z
    h1n = xi/z
    jnp = (dpsi - jn)/z
    h1np = (dxi - h1n)/z
    return jn, jnp, h1n, h1np
