from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Example:
    id: str
    title: str
    script: str


# Every example slices the 4.9 s `pirouette` source. EXAMPLES[0] is the default script.
EXAMPLES: tuple[Example, ...] = (
    Example(
        id="choreography",
        title="Choreography",
        script="""# Choreography: slice, sequence and mirror one recording
bpm 120

source pirouette

clip prep from pirouette 0.0-1.5
clip spin from pirouette 1.5-3.5
clip finish from pirouette 3.5-4.9

@1:1  clip prep
@2:3  clip spin
@4:3  clip spin mirror
@6:3  clip finish
""",
    ),
    Example(
        id="slow-motion",
        title="Slow Motion",
        script="""# Slow Motion: the whole pirouette at half speed
bpm 120

source pirouette

clip full from pirouette 0.0-4.9

@1:1  clip full speed 0.5
""",
    ),
    Example(
        id="mirror-dance",
        title="Mirror Dance",
        script="""# Mirror Dance: the spin alternates sides every two measures
bpm 120

source pirouette

clip spin from pirouette 1.0-3.0

@1:1  clip spin
@3:1  clip spin mirror
@5:1  clip spin
@7:1  clip spin mirror
""",
    ),
    Example(
        id="rewind",
        title="Rewind",
        script="""# Rewind: play forward, then backwards
bpm 120

source pirouette

clip full from pirouette 0.0-4.9

@1:1  clip full
@5:4  clip full reverse
""",
    ),
    Example(
        id="posed-sequence",
        title="Posed Sequence",
        script="""# Posed Sequence: a pose layered over a clip, then released
bpm 120

source pirouette

clip spin from pirouette 1.0-3.5

pose arms-high
  lShldr rot 0 0 -160
  rShldr rot 0 0 160

@1:1  clip spin
@1:1  pose arms-high ease-out
@3:1  pose rest ease-in hold 2
""",
    ),
    Example(
        id="full-pirouette",
        title="Full Pirouette",
        script="""# Full Pirouette: the smallest useful script
bpm 120

source pirouette

clip full from pirouette 0.0-4.9

@1:1  clip full
""",
    ),
    Example(
        id="bharatanatyam-adavu",
        title="Bharatanatyam: Adavu Stances",
        script="""# Bharatanatyam: Adavu Stances (sthanaka)
# sama, mandala (aramandi), alidha, kuncita janu (muzhumandi)
bpm 80

source pirouette

# sama: feet together, upright, arms down
pose sama
  hip pos 0 85 0
  lShldr rot -70 0 0
  rShldr rot 70 0 0
  lThigh rot 0 0 0
  rThigh rot 0 0 0
  lShin rot 0 0 0
  rShin rot 0 0 0

# aramandi: knees bent and turned out, arms at shoulder height
pose aramandi
  hip pos 0 70 0
  lShldr rot 0 0 0
  rShldr rot 0 0 0
  lThigh rot 20 -40 0
  rThigh rot -20 -40 0
  lShin rot 0 50 0
  rShin rot 0 50 0

# alidha: left leg in mandala, right leg stretched to the side
pose alidha
  hip pos -5 68 0
  lShldr rot 0 0 0
  rShldr rot 0 0 0
  lThigh rot 20 -45 0
  rThigh rot -35 0 0
  lShin rot 0 55 0
  rShin rot 0 0 0

# muzhumandi: full squat, knees out
pose muzhumandi
  hip pos 0 55 0
  lShldr rot 0 0 0
  rShldr rot 0 0 0
  lThigh rot 25 -70 0
  rThigh rot -25 -70 0
  lShin rot 0 90 0
  rShin rot 0 90 0

@1:1  pose sama ease-out hold 2
@3:1  pose aramandi ease-in hold 4
@5:1  pose alidha ease-in-out hold 2
@7:1  pose aramandi ease-in hold 4
@9:1  pose muzhumandi ease-in hold 2
@11:1 pose aramandi ease-out hold 4
@13:1 pose sama ease-in hold 2
""",
    ),
)


def get_example(example_id: str) -> Example | None:
    for ex in EXAMPLES:
        if ex.id == example_id:
            return ex
    return None
