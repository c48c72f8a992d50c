# -*- coding: utf-8 -*-
"""
Refractive index sources for dispersive layers.

Tabulated data are returned as callables index(lam) -> complex that can be
assigned to a layer of MultiLayerMie; they are evaluated at the wavelength
of each calculation. Wavelengths of tabulated data are in microns.
"""
from io import StringIO
from pathlib import Path
import numpy as _np
import pandas as _pd
import yaml
import requests
from .errors import DomainError
from .utils import convert_units, _warn_extrapolation

RI_INFO_URL = 'https://refractiveindex.info/database/data/'

def nk_table(nk_df, label='', lam_units='um'):
    '''
    Interpolated refractive index from tabulated n, k data

    Parameters
    ----------
    nk_df : pandas.DataFrame
        table with columns 'n' and 'k', indexed by wavelength (um)
    label : str, optional
        name of the material (used in warnings)
    lam_units : str, optional
        units of the wavelength passed to the returned function
        (see utils.convert_units). Default 'um'

    Returns
    -------
    callable
        index(lam) -> complex refractive index (scalar or ndarray)
    '''
    nk_df = nk_df.sort_index()
    if nk_df.shape[0] < 2:
        raise DomainError(f"At least two tabulated points are required ({label}).")

    matLambda = nk_df.index.to_numpy(dtype=float)
    mat_nk = nk_df['n'].to_numpy() + 1j*nk_df['k'].to_numpy()
    lo, hi = float(matLambda[0]), float(matLambda[-1])

    def index(lam):
        lam_um = convert_units(_np.asarray(lam, dtype=float), lam_units, 'um')

        # warning if extrapolated values
        _warn_extrapolation(lam_um, lo, hi, label=label, quantity="refractive index")
        N = _np.interp(lam_um, matLambda, mat_nk)
        return complex(N) if _np.ndim(N) == 0 else N

    return index

def read_nk_file(file_path):
    '''
    Reads a tabulated *.nk file (three columns: wavelength in um, n, k;
    '#' comments allowed)

    Returns
    -------
    pandas.DataFrame
        columns 'n' and 'k', indexed by wavelength
    '''
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f'File not found: {file_path}')

    # read data as dataframe
    nk_df = _pd.read_csv(file_path, comment='#', sep=r'\s+', header=None, index_col=0)

    # check if has n and k data
    if nk_df.shape[1] != 2:
        raise DomainError(f'Wrong file format: {file_path.name} must have 3 columns')

    # label columns and index
    nk_df.columns = ['n', 'k']
    nk_df.index.name = 'wavelength'
    return nk_df

def read_nk_yaml(text):
    """
    Reads the YAML description of a refractiveindex.info entry with
    'tabulated nk' data and returns it as a DataFrame (columns 'n', 'k',
    indexed by wavelength in um)
    """
    # Parse YAML content
    yaml_data = yaml.safe_load(text)

    # Extract tabulated data block
    try:
        block = yaml_data['DATA'][0]
    except (TypeError, KeyError, IndexError):
        raise DomainError('No DATA block found in YAML content')
    if block.get('type') != 'tabulated nk':
        raise DomainError(f"Unsupported data type: {block.get('type')}")

    # Read into DataFrame using regex-based separator
    nk_df = _pd.read_csv(StringIO(block['data']), sep=r'\s+',
                         names=['wavelength', 'n', 'k'], index_col=0)
    return nk_df

def get_ri_info(shelf, book, page, lam_units='um', timeout=30):
    '''
    Refractive index from the refractiveindex.info database

    Parameters
    ----------
    shelf : string
        Name of the shelf (main, organic, glass, other, 3D)
    book : string
        Material name
    page: string
        Refractive index source
    lam_units : str, optional
        units of the wavelength passed to the returned function
    timeout : float, optional
        timeout of the HTTP request (seconds)

    Returns
    -------
    callable
        index(lam) -> complex refractive index
    '''
    url = RI_INFO_URL + shelf + '/' + book + '/nk/' + page + '.yml'

    # Download YAML content
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    return nk_table(read_nk_yaml(response.text), label=book + '_' + page,
                    lam_units=lam_units)

'''
    --------------------------------------------------------------------
                    dielectric constant models
    --------------------------------------------------------------------
'''
def lorentz(epsinf, wp, wn, gamma, lam):
    '''
    Refractive index from Lorentz model

    Parameters
    ----------
    epsinf : float
        dielectric constant at infinity.
    wp : float
        Plasma frequency, in eV (wp^2 = Nq^2/eps0 m).
    wn : float
        Natural frequency in eV
    gamma : float
        Decay rate in eV
    lam : float or ndarray
        wavelength in um

    Returns
    -------
    complex refractive index

    '''
    w = convert_units(lam, 'um', 'eV')  # convert from um to eV

    return _np.sqrt(epsinf + wp**2/(wn**2 - w**2 - 1j*gamma*w))

def drude(epsinf, wp, gamma, lam):
    '''
    Refractive index from Drude model

    Parameters
    ----------
    epsinf : float
        dielectric constant at infinity.
    wp : float
        Plasma frequency, in eV (wp^2 = Nq^2/eps0 m).
    gamma : float
        Decay rate in eV
    lam : float or ndarray
        wavelength in um

    Returns
    -------
    complex refractive index

    '''
    w = convert_units(lam, 'um', 'eV')  # convert from um to eV

    return _np.sqrt(epsinf - wp**2/(w**2 + 1j*gamma*w))
