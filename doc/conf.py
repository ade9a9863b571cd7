from importlib import metadata
from urllib.request import urlopen


_conf_url = "https://tiker.net/sphinxconfig-v0.py"
with urlopen(_conf_url) as _inf:
    exec(compile(_inf.read(), _conf_url, "exec"), globals())

copyright = "2025, pamass contributors"
author = "pamass contributors"
release = metadata.version("pamass")
version = ".".join(release.split(".")[:2])

intersphinx_mapping = {
    "arraycontext": ("https://documen.tician.de/arraycontext/", None),
    "meshmode": ("https://documen.tician.de/meshmode/", None),
    "modepy": ("https://documen.tician.de/modepy/", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
    "pytools": ("https://documen.tician.de/pytools/", None),
    "pyopencl": ("https://documen.tician.de/pyopencl/", None),
    "python": ("https://docs.python.org/3/", None),
}


sphinxconfig_missing_reference_aliases = {
    # actx
    "Array": "obj:arraycontext.Array",
    "ArrayContext": "class:arraycontext.ArrayContext",

    # meshmode
    "Mesh": "meshmode.mesh.Mesh",

    # pamass
    "DofToQuad": "class:pamass.basis.DofToQuad",
    "DofQuadLimits": "class:pamass.dispatch.DofQuadLimits",
    "GeometricFactors": "class:pamass.geometry.GeometricFactors",
    "QuadratureRule1D": "class:pamass.basis.QuadratureRule1D",
}


def setup(app):
    app.connect("missing-reference", process_autodoc_missing_reference)  # noqa: F821
