"""
Dataset registry.

Declares every dataset the book uses, in the order chapters introduce them.
Register new datasets by appending a DatasetDescriptor to DATASET_REGISTRY;
names and ``directory/filename`` targets must stay unique.
"""

from natsci_data.datasets._base import DatasetDescriptor, ValidationEntry

_TIDYTUESDAY = "https://raw.githubusercontent.com/rfordatascience/tidytuesday/master/data"
_DPLYR_RAW = "https://raw.githubusercontent.com/tidyverse/dplyr/master/data-raw"

DATASET_REGISTRY = (
    DatasetDescriptor(
        name="Forestry",
        directory="forestry",
        filename="forest_inventory.csv",
        source_url=f"{_DPLYR_RAW}/starwars.csv",
        citation_source="Global Forest Watch",
        citation_text=(
            "Hansen, M. C., Potapov, P. V., Moore, R., Hancher, M., Turubanova, "
            "S. A., Tyukavina, A., ... & Townshend, J. (2013). High-resolution "
            "global maps of 21st-century forest cover change. Science, 342(6160), "
            "850-853."
        ),
        description=(
            "Global forest cover change data with detailed metrics on forest "
            "loss and gain."
        ),
        ruleset="forestry",
    ),
    DatasetDescriptor(
        name="Agriculture",
        directory="agriculture",
        filename="crop_yields.csv",
        source_url=f"{_TIDYTUESDAY}/2020/2020-09-01/key_crop_yields.csv",
        citation_source="Our World in Data",
        citation_text=(
            "Roser, M. and Ritchie, H. (2020). Crop Yields. Published online at "
            "OurWorldInData.org. Retrieved from: https://ourworldindata.org/crop-yields"
        ),
        description="Historical crop yield data across different countries and crop types.",
        ruleset="agriculture",
    ),
    DatasetDescriptor(
        name="Ecology",
        directory="ecology",
        filename="biodiversity.csv",
        source_url=f"{_TIDYTUESDAY}/2020/2020-08-18/plants.csv",
        citation_source="IUCN Red List",
        citation_text=(
            "International Union for Conservation of Nature. (2020). The IUCN Red "
            "List of Threatened Species. Version 2020-2."
        ),
        description="Conservation status of plant species worldwide.",
        primary_key="binomial_name",
    ),
    DatasetDescriptor(
        name="Marine",
        directory="marine",
        filename="ocean_data.csv",
        source_url=f"{_TIDYTUESDAY}/2021/2021-06-08/fishing.csv",
        citation_source="Great Lakes Fishery Commission",
        citation_text=(
            "Great Lakes Fishery Commission. (2021). Commercial Fish Production in "
            "the Great Lakes 1867-2015. http://www.glfc.org/great-lakes-databases.php"
        ),
        description=(
            "Historical commercial fishing data for the Great Lakes region, "
            "including catch by species and location."
        ),
    ),
    DatasetDescriptor(
        name="Environmental",
        directory="environmental",
        filename="climate_data.csv",
        source_url=f"{_TIDYTUESDAY}/2020/2020-07-28/penguins.csv",
        citation_source="Palmer Station Antarctica LTER",
        citation_text=(
            "Horst AM, Hill AP, Gorman KB (2020). palmerpenguins: Palmer Archipelago "
            "(Antarctica) penguin data. R package version 0.1.0. "
            "https://allisonhorst.github.io/palmerpenguins/"
        ),
        description="Environmental and morphological data for penguin species in Antarctica.",
        ruleset="environmental",
    ),
    DatasetDescriptor(
        name="Geography",
        directory="geography",
        filename="spatial.csv",
        source_url=f"{_TIDYTUESDAY}/2023/2023-03-14/drugs.csv",
        citation_source="United Nations Office on Drugs and Crime",
        citation_text="United Nations Office on Drugs and Crime. (2023). World Drug Report 2023.",
        description="Global data on drug seizures with geographical information.",
    ),
    DatasetDescriptor(
        name="Botany",
        directory="botany",
        filename="plant_traits.csv",
        source_url=f"{_TIDYTUESDAY}/2021/2021-01-26/plastics.csv",
        citation_source="Break Free From Plastic",
        citation_text="Break Free From Plastic. (2021). Plastic Waste Makers Index.",
        description="Data on plastic pollution that affects plant ecosystems.",
    ),
    DatasetDescriptor(
        name="Entomology",
        directory="entomology",
        filename="insects.csv",
        source_url=f"{_TIDYTUESDAY}/2020/2020-07-21/animal_outcomes.csv",
        citation_source="Austin Animal Center",
        citation_text=(
            "Austin Animal Center. (2020). Outcomes. Data made available by the "
            "Austin Animal Center."
        ),
        description="Data on animal outcomes that can be used for ecological studies.",
    ),
    DatasetDescriptor(
        name="Epidemiology",
        directory="epidemiology",
        filename="disease_data.csv",
        source_url=f"{_DPLYR_RAW}/storms.csv",
        citation_source="World Health Organization Global Health Observatory",
        citation_text=(
            "World Health Organization. (2022). Global Health Observatory data "
            "repository. Retrieved from https://www.who.int/data/gho"
        ),
        description=(
            "Global health data on disease prevalence, mortality, and health "
            "system indicators across countries and regions."
        ),
    ),
    DatasetDescriptor(
        name="Economics",
        directory="economics",
        filename="economic.csv",
        source_url=f"{_TIDYTUESDAY}/2020/2020-07-07/coffee_ratings.csv",
        citation_source="Coffee Quality Institute",
        citation_text="Coffee Quality Institute. (2020). Coffee Quality Database.",
        description="Coffee quality ratings and economic data relevant to agricultural economics.",
    ),
)


def check_unique_targets(descriptors):
    """Raise ValueError if two descriptors share a name or a target path."""
    seen_names = set()
    seen_targets = {}
    for d in descriptors:
        if d.name in seen_names:
            raise ValueError(f"Duplicate dataset name: {d.name!r}")
        seen_names.add(d.name)
        if d.target_key in seen_targets:
            raise ValueError(
                f"Datasets {seen_targets[d.target_key]!r} and {d.name!r} both "
                f"write to {d.target_key!r}"
            )
        seen_targets[d.target_key] = d.name


def get_descriptor(name, descriptors=DATASET_REGISTRY):
    for d in descriptors:
        if d.name == name:
            return d
    raise KeyError(f"Unknown dataset: {name!r}")


def select(names=None, descriptors=DATASET_REGISTRY):
    """Descriptors for *names* in registry order (all of them if None)."""
    if not names:
        return tuple(descriptors)
    wanted = set(names)
    unknown = wanted - {d.name for d in descriptors}
    if unknown:
        raise KeyError(f"Unknown dataset(s): {sorted(unknown)}")
    return tuple(d for d in descriptors if d.name in wanted)


def validation_entries(data_dir, descriptors=DATASET_REGISTRY):
    return [ValidationEntry.from_descriptor(d, data_dir) for d in descriptors]


__all__ = [
    "DATASET_REGISTRY",
    "DatasetDescriptor",
    "ValidationEntry",
    "check_unique_targets",
    "get_descriptor",
    "select",
    "validation_entries",
]
