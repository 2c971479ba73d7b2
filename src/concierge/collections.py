"""
Store collections by need and by ingredient.

Maps each collection handle to the words a visitor (or a goal tag) might use
for it. Used to route goal-based searches and to detect "show me the sleep
range" style requests.
"""

COLLECTION_MAP: dict[str, list[str]] = {
    # By need
    "beaute-et-peau": ["beauté", "beaute", "peau", "skin", "beauty", "anti-âge", "anti-age", "collagène", "collagen", "biotine", "biotin"],
    "stress-sommeil": ["stress", "sommeil", "sleep", "anxiété", "anxiete", "anxiety", "insomnie", "insomnia", "mélatonine", "melatonin", "magnésium", "magnesium", "ashwagandha"],
    "energie-et-endurance": ["energie", "endurance", "energy", "vitality", "fatigue", "vitalité"],
    "cerveau-concentration": ["cerveau", "concentration", "mémoire", "memoire", "memory", "cognitif", "cognitive", "brain"],
    "immunite": ["immunité", "immunite", "immunity", "immune", "défenses", "defenses", "vitamine c", "vitamin c", "zinc", "vitamine d", "vitamin d"],
    "sante-digestive-detox": ["digestion", "digestif", "digestive", "détox", "detox", "foie", "liver", "intestin", "gut", "probiotique", "probiotic"],
    "sante-hormonale": ["hormonal", "hormonale", "hormone", "hormones", "équilibre hormonal", "equilibre hormonal", "maca"],
    "articulation-mobilite": ["articulation", "articulations", "mobilité", "mobilite", "mobility", "joints", "cartilage", "glucosamine"],
    # By ingredient
    "vitamines": ["vitamine", "vitamines", "vitamin", "vitamins", "multivitamine", "multivitamin"],
    "mineraux": ["minéral", "minéraux", "mineral", "minerals", "calcium", "fer", "iron", "sélénium", "selenium"],
    "plantes-adaptogenes": ["plante adaptogène", "plantes adaptogènes", "adaptogen", "adaptogens", "ginseng", "rhodiola"],
    "acides-gras-essentiels": ["acides gras", "acide gras", "oméga", "omega", "omega 3", "oméga 3", "fish oil", "huile de poisson", "epa", "dha"],
    "probiotiques": ["probiotiques", "probiotics", "bactéries", "bacteries", "flore intestinale", "gut health"],
    # Goal tags produced by the interview
    "sport-performance": ["sport", "performance", "fitness", "muscle", "muscle_gain", "athlete", "athlète", "récupération", "recovery"],
    "sante-bien-etre": ["santé", "bien-être", "health", "wellness"],
}


def match_collections(
    goals: list[str],
    collection_map: dict[str, list[str]] | None = None,
) -> list[str]:
    """
    Collection handles relevant to the given goals.

    A goal matches a collection when it contains, or is contained in, one of
    the collection's keywords. Handles come back in map order, without
    duplicates.
    """
    collection_map = collection_map if collection_map is not None else COLLECTION_MAP
    relevant: list[str] = []
    for goal in goals:
        goal_lower = goal.lower().strip()
        if not goal_lower:
            continue
        for handle, keywords in collection_map.items():
            if handle in relevant:
                continue
            if any(k.lower() in goal_lower or goal_lower in k.lower() for k in keywords):
                relevant.append(handle)
    return relevant


# Interview goal tag -> product tags for the goal-based tag search
GOAL_TAGS: dict[str, list[str]] = {
    "energy": ["energy", "fatigue"],
    "better_sleep": ["sleep"],
    "stress": ["stress", "anxiety"],
    "immunity": ["immunity", "immune"],
    "digestion": ["digestion", "gut-health"],
    "weight_loss": ["weight-loss", "slimming"],
    "muscle_gain": ["muscle-gain", "muscle"],
    "fitness": ["fitness", "sport"],
    "wellness": ["wellness"],
    "heart": ["heart-health", "cardio"],
}
