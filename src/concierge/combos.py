"""
Product combos.

A combo is a named bundle of complementary supplements. Members are listed
as title keywords rather than catalog ids; resolve_combo_products() turns
them into real products through the catalog search.
"""

import logging
from dataclasses import dataclass, field

from concierge.catalog.models import Product
from concierge.catalog.storefront import CatalogError, CatalogSearch
from concierge.ranking import search_and_rank

logger = logging.getLogger(__name__)

# A suggested combo must share at least this many products with the advice
MIN_COMBO_OVERLAP = 2

SENIOR_AGE = 65

ATHLETE_KEYWORDS = ("fitness", "sport", "muscle", "athlete")


@dataclass(frozen=True)
class ProductCombo:
    name: str
    description: str
    products: tuple[str, ...]  # Member title keywords
    benefits: str
    target_audience: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "products": list(self.products),
            "benefits": self.benefits,
            "targetAudience": list(self.target_audience),
        }


PRODUCT_COMBOS: tuple[ProductCombo, ...] = (
    ProductCombo(
        name="Bone Health Combo",
        description="Essential nutrients for strong bones",
        products=("Vitamin D3 + K2 Capsules", "Calcium + Vitamin D3", "Magnesium Glycinate Tablets"),
        benefits="Vitamin D3 enhances calcium absorption, K2 directs calcium to bones, and Magnesium supports bone density.",
        target_audience=("seniors", "women", "osteoporosis"),
    ),
    ProductCombo(
        name="Athlete Performance Stack",
        description="Optimal combination for athletes and active individuals",
        products=("Whey Protein Isolate", "BCAA Recovery Formula", "Creatine Monohydrate", "Magnesium Glycinate Tablets"),
        benefits="Protein supports muscle recovery, BCAAs reduce fatigue, Creatine enhances strength, and Magnesium prevents cramps.",
        target_audience=("athletes", "fitness", "muscle_gain", "sport"),
    ),
    ProductCombo(
        name="Energy & Vitality Combo",
        description="Boost daily energy and reduce fatigue",
        products=("Vitamin B-Complex", "Iron + Vitamin C Complex", "Coenzyme Q10 (CoQ10)"),
        benefits="B-Complex converts food to energy, Iron prevents anemia-related fatigue, and CoQ10 supports cellular energy production.",
        target_audience=("energy", "fatigue", "wellness"),
    ),
    ProductCombo(
        name="Immune Support Stack",
        description="Strengthen your immune system",
        products=("Vitamin D3 + K2 Capsules", "Zinc + Vitamin C", "Probiotic Gut Health Formula"),
        benefits="Vitamin D and Zinc are crucial for immune function, Vitamin C supports white blood cells, and Probiotics maintain gut health (70% of immune system).",
        target_audience=("immunity", "wellness", "health"),
    ),
    ProductCombo(
        name="Gut Health Duo",
        description="Complete digestive wellness",
        products=("Probiotic Gut Health Formula", "Prebiotic Fiber Supplement"),
        benefits="Probiotics introduce beneficial bacteria, while Prebiotics feed them, creating a healthy gut microbiome.",
        target_audience=("digestive", "gut health", "wellness"),
    ),
    ProductCombo(
        name="Anti-Inflammatory Combo",
        description="Natural inflammation support",
        products=("Turmeric Curcumin Extract", "Omega-3 Fish Oil Supplement", "Magnesium Glycinate Tablets"),
        benefits="Turmeric and Omega-3 reduce inflammation, while Magnesium supports muscle relaxation and recovery.",
        target_audience=("inflammation", "recovery", "wellness"),
    ),
    ProductCombo(
        name="Stress & Sleep Support",
        description="Calm mind and restful sleep",
        products=("Ashwagandha Stress Support", "Magnesium Glycinate Tablets", "Melatonin Sleep Support"),
        benefits="Ashwagandha reduces stress, Magnesium promotes relaxation, and Melatonin regulates sleep cycles.",
        target_audience=("stress", "sleep", "better_sleep", "wellness"),
    ),
    ProductCombo(
        name="Heart Health Combo",
        description="Cardiovascular wellness support",
        products=("Omega-3 Fish Oil Supplement", "Coenzyme Q10 (CoQ10)", "Magnesium Glycinate Tablets"),
        benefits="Omega-3 supports heart health, CoQ10 provides cellular energy for heart muscle, and Magnesium helps maintain normal heart rhythm.",
        target_audience=("heart health", "cardiovascular", "seniors"),
    ),
    ProductCombo(
        name="Women's Wellness Pack",
        description="Essential nutrients for women's health",
        products=("Iron + Vitamin C Complex", "Calcium + Vitamin D3", "Organic Multivitamin Complex"),
        benefits="Iron prevents anemia (common in women), Calcium and D3 support bone health, and Multivitamin fills nutritional gaps.",
        target_audience=("women", "female"),
    ),
    ProductCombo(
        name="Recovery & Repair Stack",
        description="Post-workout recovery essentials",
        products=("Whey Protein Isolate", "BCAA Recovery Formula", "Turmeric Curcumin Extract", "Magnesium Glycinate Tablets"),
        benefits="Protein and BCAAs repair muscle tissue, Turmeric reduces post-exercise inflammation, and Magnesium prevents muscle cramps.",
        target_audience=("athletes", "recovery", "fitness", "sport"),
    ),
)

COMBOS_BY_NAME: dict[str, ProductCombo] = {combo.name: combo for combo in PRODUCT_COMBOS}


def get_combo(name: str) -> ProductCombo:
    return COMBOS_BY_NAME[name]


def recommend_by_profile(
    goals: list[str] | None = None,
    age: int | None = None,
    gender: str | None = None,
) -> list[ProductCombo]:
    """
    Combos suited to a visitor profile.

    Rules fire in a fixed order (athlete, senior, female, energy, sleep,
    immunity). When none fires the general wellness pair is returned.
    Duplicates are dropped, first occurrence wins.
    """
    goals = [g.lower() for g in goals or []]

    def has_goal(*keywords: str) -> bool:
        return any(k in goal for goal in goals for k in keywords)

    names: list[str] = []
    if has_goal(*ATHLETE_KEYWORDS):
        names += ["Athlete Performance Stack", "Recovery & Repair Stack"]
    if age is not None and age >= SENIOR_AGE:
        names += ["Bone Health Combo", "Heart Health Combo"]
    if gender == "female":
        names.append("Women's Wellness Pack")
    if has_goal("energy"):
        names.append("Energy & Vitality Combo")
    if has_goal("sleep"):
        names.append("Stress & Sleep Support")
    if has_goal("immunity"):
        names.append("Immune Support Stack")

    if not names:
        names = ["Gut Health Duo", "Immune Support Stack"]

    unique = list(dict.fromkeys(names))
    return [COMBOS_BY_NAME[name] for name in unique]


def _overlaps(title: str, keyword: str) -> bool:
    title = title.lower()
    keyword = keyword.lower()
    return title == keyword or keyword in title or title in keyword


def match_by_recommended_products(recommended: list[Product]) -> ProductCombo | None:
    """
    The combo sharing the most products with a recommendation, if any.

    A combo qualifies when at least two recommended titles overlap one of its
    member keywords. Ties go to the combo listed first.
    """
    titles = [p.title for p in recommended if p.title]
    best: ProductCombo | None = None
    best_count = 0

    for combo in PRODUCT_COMBOS:
        count = sum(
            1 for title in titles if any(_overlaps(title, keyword) for keyword in combo.products)
        )
        if count >= MIN_COMBO_OVERLAP and count > best_count:
            best, best_count = combo, count

    if best:
        logger.info(f"Recommended products match combo {best.name!r} ({best_count} overlaps)")
    return best


async def resolve_combo_products(catalog: CatalogSearch, combo: ProductCombo) -> list[Product]:
    """
    Catalog products for each combo member.

    Takes the best-ranked product not already used for another member. A
    member that fails to resolve is logged and skipped.
    """
    resolved: list[Product] = []
    seen_variants: set[str] = set()

    for raw_title in combo.products:
        keyword = raw_title.strip()
        if not keyword:
            continue
        try:
            candidates = await search_and_rank(catalog, keyword)
        except CatalogError as e:
            logger.warning(f"Could not resolve {keyword!r} for combo {combo.name!r}: {e}")
            continue

        match = next((p for p in candidates if p.variant_id not in seen_variants), None)
        if match is None:
            logger.debug(f"No unique match for {keyword!r} in combo {combo.name!r}")
            continue
        seen_variants.add(match.variant_id)
        resolved.append(match)

    logger.info(f"Combo {combo.name!r} resolved {len(resolved)}/{len(combo.products)} products")
    return resolved
