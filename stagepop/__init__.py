"""stagepop: Stage-structured matrix population model for a long-lived marine species.

A deterministic three-stage (juvenile, subadult, adult) projection model:
  - Transition matrix construction from literature vital rates
  - Population projection N(t+1) = P · N(t)
  - Dominant-eigenvalue analysis (λ, stable stage distribution, reproductive value)
  - Sensitivity and elasticity of λ to every matrix entry
  - Survival sweeps and independently parameterized management scenarios
"""

__version__ = "0.1.0"
