# -*- coding: utf-8 -*-
"""
Mie scattering coefficients of a multilayered sphere.

The layers are described by the size parameter of each outer boundary
(x_i = k*r_i, innermost first) and the refractive index of each layer
relative to the host (m_i). The coefficients are obtained with the recursive
algorithm of

- Yang, W. (2003). Improved recursive algorithm for light scattering by a
    multilayered sphere. Appl. Opt. 42(9), 1710.

and the truncation order follows

- Johnson, B. R. (1996). Light scattering by a multilayer sphere.
    Appl. Opt. 35(18), 3286.
"""
import warnings as _warnings
import numpy as _np
from .errors import DomainError, ResourceLimitError
from .special import log_riccati_bessel, psi_xi_ratio, riccati_bessel

NMAX_FLOOR = 3          # minimum number of multipole terms
NMAX_CEILING = 20000    # hard limit on the number of multipole terms

def nmax_estimate(x):
    '''
    Number of expansion terms for an outer size parameter x, according to
    B.R Johnson (1996): nmax = |x| + 4|x|^(1/3) + 2
    '''
    x = abs(x)
    return max(NMAX_FLOOR, int(_np.round(x + 4*x**(1/3) + 2)))

def truncation_order(x, nmax=None):
    '''
    Number of expansion terms used for an outer size parameter x.

    Parameters
    ----------
    x : float
        size parameter of the outer layer
    nmax : int, optional
        explicit cap on the number of terms. The smaller of nmax and the
        empirical estimate is used. Default None (estimate only)

    Returns
    -------
    int
        number of terms

    Raises
    ------
    DomainError
        if nmax < 1
    ResourceLimitError
        if the number of terms exceeds NMAX_CEILING
    '''
    estimate = nmax_estimate(x)
    if nmax is not None:
        nmax = int(nmax)
        if nmax < 1:
            raise DomainError(f"Maximum number of terms must be >= 1, got {nmax}.")
        if nmax < estimate:
            _warnings.warn(
                f"Mie series truncated at {nmax} terms "
                f"({estimate} needed for convergence).", RuntimeWarning)
            estimate = nmax

    if estimate > NMAX_CEILING:
        raise ResourceLimitError(
            f"{estimate} multipole terms requested for size parameter "
            f"{x:.6g}; the limit is {NMAX_CEILING}.")
    return estimate

def _check_layers(x, m, pec=False):
    '''
    Validate size parameters and refractive indices of the layers and
    return them as 1D numpy arrays
    '''
    x = _np.asarray(x, dtype=float).ravel()
    m = _np.asarray(m, dtype=complex).ravel()

    if x.size == 0:
        raise DomainError("At least one layer is required.")
    if x.size != m.size:
        raise DomainError(
            f"Number of layers mismatch: {x.size} size parameter(s) "
            f"but {m.size} refractive index(es).")
    if not _np.all(_np.isfinite(x)):
        raise DomainError("Size parameters must be finite.")
    if x[0] <= 0 or _np.any(_np.diff(x) <= 0):
        raise DomainError(
            "Size parameters must be > 0 and strictly increasing (inner < ... < outer).")

    # the index of a PEC core is never used
    mcheck = m[1:] if pec else m
    if not _np.all(_np.isfinite(mcheck)):
        raise DomainError("Refractive indices must be finite.")
    if _np.any(mcheck == 0):
        raise DomainError("Refractive indices must be non-zero.")

    return x, m

def _layer_recursion(x, m, nmax, pec=False, **kwargs):
    '''
    Coefficients an and bn for exactly nmax terms (no truncation rule).

    The logarithmic derivatives H^a_n, H^b_n of the field functions of each
    layer are propagated outwards (Yang 2003, eqs. 24-29) and the last ones
    are matched to the host field (eqs. 14-15).
    '''
    n = _np.arange(1, nmax + 1)
    y = x[-1]                   # size parameter of outer layer
    nlayers = len(x)

    # Get psi_n(y) and xi_n(y) of the host
    psi, xi, dpsi, dxi = riccati_bessel(y, nmax, **kwargs)

    # perfectly conducting sphere
    if pec and nlayers == 1:
        return dpsi[1:]/dxi[1:], psi[1:]/xi[1:]

    if not pec:
        ha = log_riccati_bessel(m[0]*x[0], nmax, **kwargs)[0]
        hb = ha

    for lay in range(1, nlayers):
        z1 = m[lay]*x[lay - 1]  # m_l x_(l-1)
        z2 = m[lay]*x[lay]      # m_l x_l

        d1z1, d3z1 = log_riccati_bessel(z1, nmax, **kwargs)
        d1z2, d3z2 = log_riccati_bessel(z2, nmax, **kwargs)
        qnl = psi_xi_ratio(z1, z2, nmax, d1z1, d3z1, d1z2, d3z2)

        if pec and lay == 1:
            # tangential E vanishes on the conductor
            g1, g2 = d1z1, d3z1
            gt1 = gt2 = _np.ones(nmax + 1)
        else:
            g1 = m[lay]*ha - m[lay - 1]*d1z1
            g2 = m[lay]*ha - m[lay - 1]*d3z1
            gt1 = m[lay - 1]*hb - m[lay]*d1z1
            gt2 = m[lay - 1]*hb - m[lay]*d3z1

        ha = (g2*d1z2 - qnl*g1*d3z2)/(g2 - qnl*g1)
        hb = (gt2*d1z2 - qnl*gt1*d3z2)/(gt2 - qnl*gt1)

    # match to the host field
    ml = m[-1]
    ua = ha[1:]/ml + n/y
    ub = hb[1:]*ml + n/y
    an = (ua*psi[1:] - psi[:-1])/(ua*xi[1:] - xi[:-1])
    bn = (ub*psi[1:] - psi[:-1])/(ub*xi[1:] - xi[:-1])

    return an, bn

def mie_coefficients(x, m, *, nmax=None, pec=False, **kwargs):
    '''
    Compute the mie coefficients an and bn of a multilayered sphere.

    Parameters
    ----------
    x : 1D array-like
        size parameter of the outer boundary of each layer (innermost first)
    m : 1D array-like
        refractive index of each layer relative to the host
    nmax : int, optional
        cap on the number of expansion coefficients. Default None
    pec : bool, optional
        True if the innermost layer is a perfect electric conductor (its
        index is ignored). Default False
    **kwargs :
        eps1, eps2, max_iter of the continued fraction (see special.lentz_dn1)

    Returns
    -------
    an : 1D numpy array (size nmax)
        mie coefficient for N function (orders n = 1..nmax)
    bn : 1D numpy array (size nmax)
        mie coefficient for M function (orders n = 1..nmax)
    '''
    x, m = _check_layers(x, m, pec)
    nmax = truncation_order(x[-1], nmax)
    return _layer_recursion(x, m, nmax, pec, **kwargs)

def _layer_indices(m, pec=False):
    '''Index of every layer followed by the host (1). A PEC core gets 0'''
    ml = _np.append(m, 1).astype(complex)
    if pec:
        ml[0] = 0
    return ml

def _layer_extent(x):
    '''Inner and outer size parameter of every layer, the host last'''
    return _np.append(0., x), _np.append(x, x[-1])

def _amplitude(e, h, f, df):
    '''
    Least-squares solution A of A*f = e, A*df = h (element-wise), or zero
    where f and df both vanish or overflow
    '''
    k = _np.maximum(abs(f), abs(df))
    ok = (k > 0) & _np.isfinite(k)
    k = _np.where(ok, k, 1.)
    f, df = f/k, df/k
    amp = (e*_np.conj(f) + h*_np.conj(df))/(k*(abs(f)**2 + abs(df)**2))
    return _np.where(ok & _np.isfinite(amp), amp, 0)

def _regular_part(u, psi, xi):
    # psi - u*xi, with u = 0 exact where xi overflows
    return _np.where(u == 0, psi, psi - u*xi)

def _scaled_expansion(x, m, an, bn, pec=False, **kwargs):
    '''
    Expansion coefficients of every layer with the exponential growth of
    the radial functions removed.

    With beta = Im(m_l) and the layer between xin and xout, the physical
    coefficients are
        c = c~ exp(-|beta| xout),   b = b~ exp(beta xin)
    (d and a alike), so that in terms of the scaled functions of
    special.riccati_bessel
        c psi(m_l r) = c~ psi~(m_l r) exp(|beta| (r - xout))
        b xi(m_l r)  = b~ xi~(m_l r) exp(-beta (r - xin))
    and nothing overflows inside thick absorbing layers.

    The ratios b~/c~ and a~/d~ are propagated outwards from the core, the
    host ratios being bn and an. The amplitudes c~, d~ are then transferred
    inwards from the incident wave (c = d = 1 in the host).
    '''
    nmax = an.size
    nlayers = x.size
    ml = _layer_indices(m, pec)
    xin, xout = _layer_extent(x)
    beta = ml.imag

    rm = _np.zeros((nlayers + 1, nmax), dtype=complex)     # b~/c~
    rn = _np.zeros((nlayers + 1, nmax), dtype=complex)     # a~/d~
    rm[-1], rn[-1] = bn, an

    zero = _np.zeros(nmax, dtype=complex)
    one = _np.ones(nmax, dtype=complex)
    boundary = []
    with _np.errstate(over='ignore', invalid='ignore', divide='ignore'):
        for j in range(nlayers):
            if pec and j == 0:
                # tangential E vanishes on the conductor
                f, df, g, dg, mr = zero, one, one, zero, 1.
            else:
                psi1, xi1, dpsi1, dxi1 = [
                    fn[1:] for fn in riccati_bessel(ml[j]*x[j], nmax, scaled=True, **kwargs)]
                att = _np.exp(-beta[j]*(xout[j] - xin[j]))
                u, v = rm[j]*att, rn[j]*att
                f, df = _regular_part(u, psi1, xi1), _regular_part(u, dpsi1, dxi1)
                g, dg = _regular_part(v, psi1, xi1), _regular_part(v, dpsi1, dxi1)
                mr = ml[j]/ml[j + 1]

            psi2, xi2, dpsi2, dxi2 = [
                fn[1:] for fn in riccati_bessel(ml[j + 1]*x[j], nmax, scaled=True, **kwargs)]
            s = _np.exp(-abs(beta[j + 1])*(xout[j + 1] - xin[j + 1]))
            boundary.append((f, df, g, dg, mr, s, psi2, xi2, dpsi2, dxi2))

            if j + 1 < nlayers:
                rmj = s*(f*dpsi2 - mr*df*psi2)/(f*dxi2 - mr*df*xi2)
                rnj = s*(dg*psi2 - mr*g*dpsi2)/(dg*xi2 - mr*g*dxi2)
                rm[j + 1] = _np.where(_np.isfinite(rmj), rmj, 0)
                rn[j + 1] = _np.where(_np.isfinite(rnj), rnj, 0)

        cln = _np.zeros((nlayers + 1, nmax), dtype=complex)
        dln = _np.zeros((nlayers + 1, nmax), dtype=complex)
        cln[-1] = dln[-1] = 1
        first = 1 if pec else 0
        for j in reversed(range(first, nlayers)):
            f, df, g, dg, mr, s, psi2, xi2, dpsi2, dxi2 = boundary[j]
            co, do = cln[j + 1], dln[j + 1]

            # M functions: E from (c psi - b xi), H from (c psi' - b xi')
            em = mr*co*(s*psi2 - rm[j + 1]*xi2)
            hm = co*(s*dpsi2 - rm[j + 1]*dxi2)
            cln[j] = _amplitude(em, hm, f, df)

            # N functions: E from (d psi' - a xi'), H from (d psi - a xi)
            en = mr*do*(s*dpsi2 - rn[j + 1]*dxi2)
            hn = do*(s*psi2 - rn[j + 1]*xi2)
            dln[j] = _amplitude(en, hn, dg, g)

    return rn*dln, rm*cln, cln, dln

def expansion_coefficients(x, m, an, bn, *, pec=False, **kwargs):
    '''
    Expansion coefficients of the field in every layer, obtained from the
    continuity of tangential E and H, starting from the host (unit incident
    coefficients and scattering coefficients an, bn).

    In layer l the field is
        E = sum_n E_n [c M1_o1n - i d N1_e1n + i a N3_e1n - b M3_o1n]
    where the superscript 1 (3) denotes the radial function j_n (h1_n) of
    argument m_l*k*r.

    Parameters
    ----------
    x, m : 1D array-like
        layers as in mie_coefficients
    an, bn : 1D array-like
        scattering coefficients (orders 1..nmax)
    pec : bool, optional
        True if the innermost layer is a perfect electric conductor

    Returns
    -------
    aln, bln, cln, dln : 2D numpy arrays (nlayers + 1, nmax)
        coefficients of each layer; the last row corresponds to the host.
        Coefficients of a PEC core are zero, and the outgoing coefficients
        of a dielectric core vanish. In thick absorbing layers c and d
        underflow to zero (the field there is exponentially small).
    '''
    x, m = _check_layers(x, m, pec)
    an = _np.asarray(an, dtype=complex).ravel()
    bn = _np.asarray(bn, dtype=complex).ravel()

    aln, bln, cln, dln = _scaled_expansion(x, m, an, bn, pec, **kwargs)
    beta = _layer_indices(m, pec).imag
    xin, xout = _layer_extent(x)
    reg = _np.exp(-abs(beta)*xout)[:, None]
    out = _np.exp(beta*xin)[:, None]
    return aln*out, bln*out, cln*reg, dln*reg
