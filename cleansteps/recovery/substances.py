"""Substance catalog: static lookup only."""

from __future__ import annotations

from enum import Enum


class Substance(str, Enum):
    alcohol = "Alcohol"
    nicotine = "Nicotine"
    opioids = "Opioids"
    benzodiazepines = "Benzodiazepines"
    amphetamines = "Amphetamines"
    cathinones = "Cathinones"
    gabapentinoids = "Gabapentinoids"
    barbiturates = "Barbiturates"
    psychedelics = "Psychedelics"
    dissociatives = "Dissociatives"
    cannabis = "Cannabis"
    cocaine = "Cocaine"
    hallucinogens = "Hallucinogens"
    inhalants = "Inhalants"
    methamphetamine = "Methamphetamine"
    prescription_stimulants = "Prescription Stimulants"
    steroids = "Steroids"
    synthetic_cannabinoids = "Synthetic Cannabinoids"
    synthetic_cathinones = "Synthetic Cathinones"
    synthetic_opioids = "Synthetic Opioids"

    @property
    def description(self) -> str:
        return SUBSTANCE_DESCRIPTIONS[self]


SUBSTANCE_DESCRIPTIONS: dict[Substance, str] = {
    Substance.alcohol: (
        "A psychoactive substance that is commonly consumed in beverages such as beer, wine, and spirits."
    ),
    Substance.nicotine: (
        "An addictive chemical found in tobacco products such as cigarettes, cigars, and e-cigarettes."
    ),
    Substance.opioids: (
        "A class of drugs that include prescription medications such as oxycodone, hydrocodone, "
        "and illicit substances like heroin."
    ),
    Substance.benzodiazepines: (
        "A type of sedative medication prescribed for anxiety disorders and insomnia, "
        "with the potential for dependence and addiction."
    ),
    Substance.amphetamines: (
        "A group of stimulant drugs that are commonly used to treat attention deficit "
        "hyperactivity disorder (ADHD) and narcolepsy."
    ),
    Substance.cathinones: (
        "Synthetic stimulant drugs that are chemically related to amphetamines, "
        "often sold as 'bath salts' or 'research chemicals.'"
    ),
    Substance.gabapentinoids: (
        "Medications used to treat epilepsy, neuropathic pain, and other conditions, "
        "with potential for abuse and dependence."
    ),
    Substance.barbiturates: (
        "Central nervous system depressants that are prescribed for anxiety, insomnia, "
        "and seizure disorders, but can be highly addictive."
    ),
    Substance.psychedelics: (
        "A class of hallucinogenic drugs that alter perception, mood, and cognitive processes, "
        "including substances like LSD, psilocybin, and MDMA."
    ),
    Substance.dissociatives: (
        "Substances that induce dissociative states, producing feelings of detachment from oneself "
        "and one's surroundings, including drugs like ketamine and PCP."
    ),
    Substance.cannabis: (
        "A psychoactive drug derived from the cannabis plant, commonly known as marijuana or weed."
    ),
    Substance.cocaine: (
        "A powerful stimulant drug derived from the coca plant, often snorted, smoked, "
        "or injected for its euphoric effects."
    ),
    Substance.hallucinogens: (
        "Substances that cause hallucinations and distortions in perception, "
        "including substances like peyote, DMT, and salvia."
    ),
    Substance.inhalants: (
        "Chemical vapors that produce mind-altering effects when inhaled, commonly found in "
        "household products like glue, paint, and gasoline."
    ),
    Substance.methamphetamine: (
        "A potent central nervous system stimulant that is highly addictive, commonly known as meth."
    ),
    Substance.prescription_stimulants: (
        "Medications used to treat ADHD and narcolepsy, including drugs like Adderall, Ritalin, and Vyvanse."
    ),
    Substance.steroids: (
        "Synthetic drugs that mimic the effects of testosterone and other hormones, "
        "commonly used to enhance athletic performance."
    ),
    Substance.synthetic_cannabinoids: (
        "Man-made chemicals that are sprayed on dried plant material and smoked for their "
        "psychoactive effects, marketed as 'synthetic marijuana' or 'spice.'"
    ),
    Substance.synthetic_cathinones: (
        "Synthetic stimulant drugs that are similar to cathinones found in the khat plant, "
        "often sold as 'bath salts' or 'legal highs.'"
    ),
    Substance.synthetic_opioids: (
        "Lab-made drugs that mimic the effects of natural opioids, often more potent "
        "and dangerous than traditional opioids."
    ),
}


def list_substances() -> list[Substance]:
    return list(Substance)


def get_substance(name: str) -> Substance | None:
    """Look up by member name ("prescription_stimulants") or display value ("Prescription Stimulants")."""
    if name in Substance.__members__:
        return Substance[name]
    try:
        return Substance(name)
    except ValueError:
        return None
