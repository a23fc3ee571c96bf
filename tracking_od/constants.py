"""Physical constants shared by the tracking models."""

SPEED_OF_LIGHT_MPS = 299_792_458.0

# Nominal gravitational parameters [m^3/s^2].
MU_SUN = 1.32712440018e20
MU_EARTH = 3.986004418e14
MU_MOON = 4.9028e12
MU_MARS = 4.282837e13

EARTH_ROTATION_RATE_RADPS = 7.2921159e-5
ASTRONOMICAL_UNIT_M = 1.495978707e11
