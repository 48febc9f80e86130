"""
Example custom fold prelude for rewritetools.

A prelude maps operation names to handlers that fold constant arguments.
Install one on a host interface through its normalize hook:

    from rewritetools import SExprInterface, fold_constants
    from custom_prelude import PRELUDE

    iface = SExprInterface(normalize=fold_constants(PRELUDE))
"""

import math
from rewritetools import binary_only, unary_only, ARITHMETIC_PRELUDE

# Start with the arithmetic prelude and extend it
PRELUDE = {
    **ARITHMETIC_PRELUDE,

    # Number theory
    "gcd": binary_only(math.gcd),
    "mod": binary_only(lambda a, b: a % b if b != 0 else None),
    "factorial": unary_only(lambda n: math.factorial(n) if n >= 0 else None),

    # Rounding
    "floor": unary_only(math.floor),
    "ceil": unary_only(math.ceil),

    "min": binary_only(min),
    "max": binary_only(max),
}
