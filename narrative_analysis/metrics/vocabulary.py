"""
Style Vocabulary
================

Word and phrase lists behind the prose-style counts (weak verbs, filter
words, cliches, sensory detail, passive participles). Like the loop
vocabulary these are product-tunable lists; the counting rules live in
the metrics calculator.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple, Union
import json


DEFAULT_WEAK_VERBS: FrozenSet[str] = frozenset({
    "is", "are", "was", "were", "be", "being", "been",
    "have", "has", "had", "having",
    "do", "does", "did", "doing",
    "get", "gets", "got", "getting", "gotten",
    "make", "makes", "made", "making",
    "go", "goes", "went", "going", "gone",
    "come", "comes", "came", "coming",
    "take", "takes", "took", "taking", "taken",
    "give", "gives", "gave", "giving", "given",
    "put", "puts", "putting",
    "seem", "seems", "seemed", "seeming",
    "become", "becomes", "became", "becoming",
})

DEFAULT_FILTER_WORDS: FrozenSet[str] = frozenset({
    "saw", "see", "sees", "seeing", "seen",
    "heard", "hear", "hears", "hearing",
    "felt", "feel", "feels", "feeling",
    "noticed", "notice", "notices", "noticing",
    "seemed", "seem", "seems", "seeming",
    "realized", "realize", "realizes", "realizing",
    "thought", "think", "thinks", "thinking",
    "wondered", "wonder", "wonders", "wondering",
    "watched", "watch", "watches", "watching",
    "looked", "look", "looks", "looking",
    "smelled", "smell", "smells", "smelling",
})

# Matched as word prefixes: "look" also counts "looking".
DEFAULT_SENSORY_STEMS: Tuple[str, ...] = (
    # sight
    "see", "saw", "look", "looked", "bright", "dark", "colorful", "gleaming",
    "shadowy", "shimmering",
    # sound
    "hear", "heard", "sound", "loud", "quiet", "whisper", "shout", "echo",
    "silence", "rumble",
    # touch
    "feel", "felt", "touch", "rough", "smooth", "soft", "hard", "cold", "warm", "hot",
    # smell
    "smell", "smelled", "scent", "fragrant", "musty", "fresh", "acrid", "aromatic",
    # taste
    "taste", "tasted", "flavor", "sweet", "sour", "bitter", "salty", "savory",
    "delicious",
)

DEFAULT_CLICHES: Tuple[str, ...] = (
    "at the end of the day", "think outside the box", "bottom line",
    "hit the ground running", "low-hanging fruit", "move the needle",
    "eyes sparkled", "eyes gleamed", "heart raced", "blood ran cold",
    "time stood still", "moment of truth", "breath caught",
    "crystal clear", "clear as day", "cold as ice", "dark as night",
    "quiet as a mouse", "quick as lightning", "strong as an ox",
    "busy as a bee", "light as a feather", "fit as a fiddle",
    "last but not least", "it goes without saying", "needless to say",
    "at this point in time", "in this day and age", "for all intents and purposes",
    "each and every", "first and foremost", "sad but true",
    "only time will tell", "easier said than done", "better late than never",
    "actions speak louder than words", "the tip of the iceberg",
    "a blessing in disguise", "add insult to injury", "beat around the bush",
    "heart pounded", "heart sank", "heart skipped", "heart leaped",
    "stomach churned", "stomach dropped", "stomach turned",
    "knees buckled", "knees weak", "jaw dropped", "jaw clenched",
    "fists clenched", "pulse quickened", "palms sweaty",
    "spine tingled", "hair stood on end", "goosebumps",
    "butterflies in stomach", "lump in throat", "face flushed",
    "cheeks burned", "ears burned", "blood boiled",
    "breath away", "swept off feet", "head over heels",
    "love at first sight", "match made in heaven",
    "writing on the wall", "threw caution to the wind",
    "caught between a rock and a hard place",
    "avoid like the plague", "bite the bullet", "break the ice",
    "cutting corners", "give the benefit of the doubt",
    "hit the nail on the head", "in the heat of the moment",
    "jump on the bandwagon", "let the cat out of the bag",
    "piece of cake", "raining cats and dogs", "bite off more than you can chew",
)

DEFAULT_PASSIVE_AUXILIARIES: FrozenSet[str] = frozenset({
    "am", "is", "are", "was", "were", "be", "been", "being",
})

DEFAULT_IRREGULAR_PARTICIPLES: FrozenSet[str] = frozenset({
    "known", "seen", "given", "taken", "done", "gone", "made", "found", "kept",
    "left", "lost", "built", "bought", "caught", "felt", "held", "heard", "lent",
    "paid", "read", "said", "sold", "sent", "set", "told", "thought",
    "understood", "written", "driven", "eaten", "thrown", "grown", "broken",
    "chosen", "spoken", "forgotten", "forgiven", "hidden", "shown", "sung",
    "worn", "born", "put", "cut", "hit", "hurt", "won", "beaten", "bound",
    "fed", "laid", "led", "met",
})

DEFAULT_ADVERB_EXCEPTIONS: FrozenSet[str] = frozenset({
    "family", "only", "lovely", "lonely", "friendly", "silly", "ugly", "early",
    "daily", "weekly", "monthly", "yearly", "holy", "jelly", "belly", "bully",
    "fly", "rely", "supply", "apply", "reply",
})


def _phrases(values: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for value in values:
        phrase = " ".join(value.lower().split())
        if phrase and phrase not in seen:
            seen.append(phrase)
    return tuple(seen)


@dataclass(frozen=True)
class StyleVocabulary:
    """
    Replaceable lists for the prose-style counts.

    weak_verbs / filter_words: single words, counted per occurrence
    sensory_stems:      word prefixes for sensory detail
    cliches:            phrases, each counted once if present
    passive_auxiliaries / irregular_participles: "was taken", "is known"
    adverb_exceptions:  -ly words that are not adverbs
    """
    weak_verbs: FrozenSet[str] = DEFAULT_WEAK_VERBS
    filter_words: FrozenSet[str] = DEFAULT_FILTER_WORDS
    sensory_stems: Tuple[str, ...] = DEFAULT_SENSORY_STEMS
    cliches: Tuple[str, ...] = DEFAULT_CLICHES
    passive_auxiliaries: FrozenSet[str] = DEFAULT_PASSIVE_AUXILIARIES
    irregular_participles: FrozenSet[str] = DEFAULT_IRREGULAR_PARTICIPLES
    adverb_exceptions: FrozenSet[str] = DEFAULT_ADVERB_EXCEPTIONS

    def __post_init__(self):
        object.__setattr__(self, 'sensory_stems', _phrases(self.sensory_stems))
        object.__setattr__(self, 'cliches', _phrases(self.cliches))
        for name in ('weak_verbs', 'filter_words', 'passive_auxiliaries',
                     'irregular_participles', 'adverb_exceptions'):
            object.__setattr__(self, name, frozenset(w.lower() for w in getattr(self, name)))
        if not self.passive_auxiliaries:
            raise ValueError("passive_auxiliaries must not be empty")

    def merged_with(self, **extra: Iterable[str]) -> StyleVocabulary:
        changes = {}
        for name, values in extra.items():
            current = getattr(self, name)
            if isinstance(current, frozenset):
                changes[name] = current | frozenset(values)
            else:
                changes[name] = tuple(current) + tuple(values)
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            'weak_verbs': sorted(self.weak_verbs),
            'filter_words': sorted(self.filter_words),
            'sensory_stems': list(self.sensory_stems),
            'cliches': list(self.cliches),
            'passive_auxiliaries': sorted(self.passive_auxiliaries),
            'irregular_participles': sorted(self.irregular_participles),
            'adverb_exceptions': sorted(self.adverb_exceptions),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Iterable[str]], base: Optional[StyleVocabulary] = None) -> StyleVocabulary:
        """Present keys REPLACE the base's lists; missing keys keep them."""
        base = base or StyleVocabulary()
        unknown = set(data) - set(base.to_dict())
        if unknown:
            raise ValueError(f"unknown style vocabulary fields: {sorted(unknown)}")
        changes = {}
        for name, values in data.items():
            if isinstance(getattr(base, name), frozenset):
                changes[name] = frozenset(values)
            else:
                changes[name] = tuple(values)
        return replace(base, **changes)

    @staticmethod
    def from_json(path: Union[str, Path]) -> StyleVocabulary:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return StyleVocabulary.from_dict(data)


DEFAULT_STYLE_VOCABULARY = StyleVocabulary()
