# erk_tables.py
"""
Butcher tableaux of the explicit Runge-Kutta methods.

    c | A
    --+---
      | b      (solution weights)
      | be     (embedded weights, if any)

References: Hairer, Nørsett & Wanner, Solving ODEs I (1993), tables of
Sections II.1, II.4, II.5 and the DOPRI5 / DOP853 codes.
"""
from dataclasses import dataclass, field
from typing import Tuple

Vec = Tuple[float, ...]
Mat = Tuple[Vec, ...]


@dataclass(frozen=True)
class Tableau:
    """
    Immutable Butcher tableau.

    Parameters
    ----------
    A, B, C : coefficients (A is square, strictly lower triangular)
    p       : classical order of the solution weights B
    q       : order that drives the step-size exponent 1/(q+1)
    Be      : embedded weights; E = B − Be is derived from them
    E, E3   : explicit error weights (DOP853 blends a 5th and a 3rd order
              estimate and has no single Be)
    fsal    : last stage equals f(x+h, y_new)
    lund    : Lund stabilisation β
    dense   : coefficients of the continuous extension (dopri5 only)
    """
    name:  str
    A:     Mat
    B:     Vec
    C:     Vec
    p:     int
    q:     int   = 0
    Be:    Vec | None = None
    E:     Vec | None = None
    E3:    Vec | None = None
    fsal:  bool  = False
    lund:  float = 0.0
    dense: Vec | None = None
    nstg:  int   = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "nstg", len(self.B))
        if self.E is None and self.Be is not None:
            E = tuple(b - be for b, be in zip(self.B, self.Be))
            object.__setattr__(self, "E", E)

    @property
    def embedded(self) -> bool:
        return self.E is not None


def _lower(rows, s: int) -> Mat:
    """Pad ragged rows  [[], [a21], [a31, a32], ...]  to an s×s matrix."""
    return tuple(tuple(list(r) + [0.0] * (s - len(r))) for r in rows)


# --------------------------------------------------------------------------- #
# ---- low order, fixed-step only ------------------------------------------- #
FWEULER = Tableau("fweuler", A=((0.0,),), B=(1.0,), C=(0.0,), p=1)

RK2 = Tableau("rk2",                                   # midpoint
              A=_lower([[], [1/2]], 2),
              B=(0.0, 1.0),
              C=(0.0, 1/2), p=2)

RK3 = Tableau("rk3",
              A=_lower([[], [1/2], [-1.0, 2.0]], 3),
              B=(1/6, 2/3, 1/6),
              C=(0.0, 1/2, 1.0), p=3)

HEUN3 = Tableau("heun3",
                A=_lower([[], [1/3], [0.0, 2/3]], 3),
                B=(1/4, 0.0, 3/4),
                C=(0.0, 1/3, 2/3), p=3)

RK4 = Tableau("rk4",
              A=_lower([[], [1/2], [0.0, 1/2], [0.0, 0.0, 1.0]], 4),
              B=(1/6, 1/3, 1/3, 1/6),
              C=(0.0, 1/2, 1/2, 1.0), p=4)

RK4_38 = Tableau("rk4-3/8",
                 A=_lower([[], [1/3], [-1/3, 1.0], [1.0, -1.0, 1.0]], 4),
                 B=(1/8, 3/8, 3/8, 1/8),
                 C=(0.0, 1/3, 2/3, 1.0), p=4)

# --------------------------------------------------------------------------- #
# ---- embedded pairs ------------------------------------------------------- #
MOEULER = Tableau("moeuler",                          # Heun–Euler 2(1)
                  A=_lower([[], [1.0]], 2),
                  B=(1/2, 1/2),
                  Be=(1.0, 0.0),
                  C=(0.0, 1.0), p=2, q=1)

MERSON4 = Tableau("merson4",
                  A=_lower([[],
                            [1/3],
                            [1/6, 1/6],
                            [1/8, 0.0, 3/8],
                            [1/2, 0.0, -3/2, 2.0]], 5),
                  B=(1/6, 0.0, 0.0, 2/3, 1/6),
                  Be=(1/10, 0.0, 3/10, 2/5, 1/5),
                  C=(0.0, 1/3, 1/3, 1/2, 1.0), p=4, q=3)

ZONNEVELD4 = Tableau("zonneveld4",
                     A=_lower([[],
                               [1/2],
                               [0.0, 1/2],
                               [0.0, 0.0, 1.0],
                               [5/32, 7/32, 13/32, -1/32]], 5),
                     B=(1/6, 1/3, 1/3, 1/6, 0.0),
                     Be=(-1/2, 7/3, 7/3, 13/6, -16/3),
                     C=(0.0, 1/2, 1/2, 1.0, 3/4), p=4, q=3)

FEHLBERG4 = Tableau("fehlberg4",                       # RKF 4(5)
                    A=_lower([[],
                              [1/4],
                              [3/32, 9/32],
                              [1932/2197, -7200/2197, 7296/2197],
                              [439/216, -8.0, 3680/513, -845/4104],
                              [-8/27, 2.0, -3544/2565, 1859/4104, -11/40]], 6),
                    B=(25/216, 0.0, 1408/2565, 2197/4104, -1/5, 0.0),
                    Be=(16/135, 0.0, 6656/12825, 28561/56430, -9/50, 2/55),
                    C=(0.0, 1/4, 3/8, 12/13, 1.0, 1/2), p=4, q=4)

DOPRI5 = Tableau("dopri5",                             # Dormand–Prince 5(4)
                 A=_lower([[],
                           [1/5],
                           [3/40, 9/40],
                           [44/45, -56/15, 32/9],
                           [19372/6561, -25360/2187, 64448/6561, -212/729],
                           [9017/3168, -355/33, 46732/5247, 49/176, -5103/18656],
                           [35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84]], 7),
                 B=(35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84, 0.0),
                 Be=(5179/57600, 0.0, 7571/16695, 393/640, -92097/339200,
                     187/2100, 1/40),
                 C=(0.0, 1/5, 3/10, 4/5, 8/9, 1.0, 1.0), p=5, q=4,
                 fsal=True, lund=0.04,
                 dense=(-12715105075/11282082432, 0.0,
                        87487479700/32700410799, -10690763975/1880347072,
                        701980252875/199316789632, -1453857185/822651844,
                        69997945/29380423))

VERNER6 = Tableau("verner6",                           # Verner 6(5)
                  A=_lower([[],
                            [1/6],
                            [4/75, 16/75],
                            [5/6, -8/3, 5/2],
                            [-165/64, 55/6, -425/64, 85/96],
                            [12/5, -8.0, 4015/612, -11/36, 88/255],
                            [-8263/15000, 124/75, -643/680, -81/250,
                             2484/10625, 0.0],
                            [3501/1720, -300/43, 297275/52632, -319/2322,
                             24068/84065, 0.0, 3850/26703]], 8),
                  B=(3/40, 0.0, 875/2244, 23/72, 264/1955, 0.0, 125/11592,
                     43/616),
                  Be=(13/160, 0.0, 2375/5984, 5/16, 12/85, 3/44, 0.0, 0.0),
                  C=(0.0, 1/6, 4/15, 2/3, 5/6, 1.0, 1/15, 1.0), p=6, q=5)

FEHLBERG7 = Tableau("fehlberg7",                       # RKF 7(8)
                    A=_lower([[],
                              [2/27],
                              [1/36, 1/12],
                              [1/24, 0.0, 1/8],
                              [5/12, 0.0, -25/16, 25/16],
                              [1/20, 0.0, 0.0, 1/4, 1/5],
                              [-25/108, 0.0, 0.0, 125/108, -65/27, 125/54],
                              [31/300, 0.0, 0.0, 0.0, 61/225, -2/9, 13/900],
                              [2.0, 0.0, 0.0, -53/6, 704/45, -107/9, 67/90,
                               3.0],
                              [-91/108, 0.0, 0.0, 23/108, -976/135, 311/54,
                               -19/60, 17/6, -1/12],
                              [2383/4100, 0.0, 0.0, -341/164, 4496/1025,
                               -301/82, 2133/4100, 45/82, 45/164, 18/41],
                              [3/205, 0.0, 0.0, 0.0, 0.0, -6/41, -3/205,
                               -3/41, 3/41, 6/41, 0.0],
                              [-1777/4100, 0.0, 0.0, -341/164, 4496/1025,
                               -289/82, 2193/4100, 51/82, 33/164, 12/41,
                               0.0, 1.0]], 13),
                    B=(41/840, 0.0, 0.0, 0.0, 0.0, 34/105, 9/35, 9/35,
                       9/280, 9/280, 41/840, 0.0, 0.0),
                    Be=(0.0, 0.0, 0.0, 0.0, 0.0, 34/105, 9/35, 9/35,
                        9/280, 9/280, 0.0, 41/840, 41/840),
                    C=(0.0, 2/27, 1/9, 1/6, 5/12, 1/2, 5/6, 1/6, 2/3, 1/3,
                       1.0, 0.0, 1.0), p=7, q=7)

# DOP853 ------------------------------------------------------------------------
_B8 = (5.42937341165687622380535766363e-2, 0.0, 0.0, 0.0, 0.0,
       4.45031289275240888144113950566e0,
       1.89151789931450038304281599044e0,
       -5.8012039600105847814672114227e0,
       3.1116436695781989440891606237e-1,
       -1.52160949662516078556178806805e-1,
       2.01365400804030348374776537501e-1,
       4.47106157277725905176885569043e-2)

_BHH = (0.244094488188976377952755905512e+00, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0,
        0.0, 0.733846688281611857341361741547e+00, 0.0, 0.0,
        0.220588235294117647058823529412e-01)

DOPRI8 = Tableau("dopri8",
                 A=_lower([[],
                           [5.26001519587677318785587544488e-2],
                           [1.97250569845378994544595329183e-2,
                            5.91751709536136983633785987549e-2],
                           [2.95875854768068491816892993775e-2, 0.0,
                            8.87627564304205475450678981324e-2],
                           [2.41365134159266685502369798665e-1, 0.0,
                            -8.84549479328286085344864962717e-1,
                            9.24834003261792003115737966543e-1],
                           [3.7037037037037037037037037037e-2, 0.0, 0.0,
                            1.70828608729473871279604482173e-1,
                            1.25467687566822425016691814123e-1],
                           [3.7109375e-2, 0.0, 0.0,
                            1.70252211019544039314978060272e-1,
                            6.02165389804559606850219397283e-2,
                            -1.7578125e-2],
                           [3.70920001185047927108779319836e-2, 0.0, 0.0,
                            1.70383925712239993810214054705e-1,
                            1.07262030446373284651809199168e-1,
                            -1.53194377486244017527936158236e-2,
                            8.27378916381402288758473766002e-3],
                           [6.24110958716075717114429577812e-1, 0.0, 0.0,
                            -3.36089262944694129406857109825e0,
                            -8.68219346841726006818189891453e-1,
                            2.75920996994467083049415600797e1,
                            2.01540675504778934086186788979e1,
                            -4.34898841810699588477366255144e1],
                           [4.77662536438264365890433908527e-1, 0.0, 0.0,
                            -2.48811461997166764192642586468e0,
                            -5.90290826836842996371446475743e-1,
                            2.12300514481811942347288949897e1,
                            1.52792336328824235832596922938e1,
                            -3.32882109689848629194453265587e1,
                            -2.03312017085086261358222928593e-2],
                           [-9.3714243008598732571704021658e-1, 0.0, 0.0,
                            5.18637242884406370830023853209e0,
                            1.09143734899672957818500254654e0,
                            -8.14978701074692612513997267357e0,
                            -1.85200656599969598641566180701e1,
                            2.27394870993505042818970056734e1,
                            2.49360555267965238987089396762e0,
                            -3.0467644718982195003823669022e0],
                           [2.27331014751653820792359768449e0, 0.0, 0.0,
                            -1.05344954667372501984066689879e1,
                            -2.00087205822486249909675718444e0,
                            -1.79589318631187989172765950534e1,
                            2.79488845294199600508499808837e1,
                            -2.85899827713502369474065508674e0,
                            -8.87285693353062954433549289258e0,
                            1.23605671757943030647266201528e1,
                            6.43392746015763530355970484046e-1]], 12),
                 B=_B8,
                 E=(0.1312004499419488073250102996e-01, 0.0, 0.0, 0.0, 0.0,
                    -0.1225156446376204440720569753e+01,
                    -0.4957589496572501915214079952e+00,
                    0.1664377182454986536961530415e+01,
                    -0.3503288487499736816886487290e+00,
                    0.3341791187130174790297318841e+00,
                    0.8192320648511571246570742613e-01,
                    -0.2235530786388629525884427845e-01),
                 E3=tuple(b - bhh for b, bhh in zip(_B8, _BHH)),
                 C=(0.0,
                    0.526001519587677318785587544488e-01,
                    0.789002279381515978178381316732e-01,
                    0.118350341907227396726757197510e+00,
                    0.281649658092772603273242802490e+00,
                    0.333333333333333333333333333333e+00,
                    0.25e+00,
                    0.307692307692307692307692307692e+00,
                    0.651282051282051282051282051282e+00,
                    0.6e+00,
                    0.857142857142857142857142857142e+00,
                    1.0), p=8, q=7)


TABLEAUS = {t.name: t for t in (
    FWEULER, MOEULER, RK2, RK3, HEUN3, RK4, RK4_38,
    MERSON4, ZONNEVELD4, FEHLBERG4,
    DOPRI5, VERNER6, FEHLBERG7, DOPRI8,
)}
