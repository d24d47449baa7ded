"""
Static vaccination reference for Kenyan layer and broiler flocks.
"""

from typing import Dict, List

CHICK_TYPES = ('layer', 'broiler')

# Broilers go to market at about six weeks
BROILER_LAST_DAY = 42

VACCINATION_SCHEDULE = [
    {'day': 1, 'vaccine': "Marek's Disease", 'method': 'Subcutaneous injection',
     'note': 'Given at hatchery'},
    {'day': 7, 'vaccine': 'Newcastle Disease (ND) + Infectious Bronchitis (IB)', 'method': 'Eye drop',
     'note': 'Important for respiratory protection'},
    {'day': 14, 'vaccine': 'Gumboro (IBD)', 'method': 'Drinking water',
     'note': 'First dose'},
    {'day': 21, 'vaccine': 'Newcastle Disease (ND) Booster', 'method': 'Drinking water',
     'note': 'Booster dose'},
    {'day': 28, 'vaccine': 'Gumboro (IBD) Booster', 'method': 'Drinking water',
     'note': 'Second dose'},
    {'day': 42, 'vaccine': 'Fowl Pox', 'method': 'Wing web stab',
     'note': 'For layers only'},
    {'day': 56, 'vaccine': 'Newcastle Disease (ND)', 'method': 'Intramuscular injection',
     'note': 'For layers - 8 weeks'},
    {'day': 112, 'vaccine': 'Fowl Typhoid', 'method': 'Intramuscular injection',
     'note': 'For layers - 16 weeks'},
    {'day': 119, 'vaccine': 'Newcastle Disease (ND) + IB + EDS', 'method': 'Intramuscular injection',
     'note': 'For layers - 17 weeks, before lay'},
]

VACCINATION_TIPS = [
    {'title': 'Timing is Critical',
     'description': 'Administer vaccines at the exact recommended age for maximum effectiveness.'},
    {'title': 'Storage',
     'description': 'Keep vaccines refrigerated at 2-8°C. Never freeze vaccines.'},
    {'title': 'Clean Equipment',
     'description': 'Use sterile equipment for each vaccination to prevent contamination.'},
    {'title': 'Water Quality',
     'description': 'Use clean, chlorine-free water when administering vaccines through drinking water.'},
    {'title': 'Handling',
     'description': 'Handle birds gently during vaccination to reduce stress.'},
    {'title': 'Record Keeping',
     'description': 'Maintain detailed records of all vaccinations administered.'},
    {'title': 'Observe Post-Vaccination',
     'description': 'Monitor birds closely for 48 hours after vaccination for any adverse reactions.'},
    {'title': 'Professional Guidance',
     'description': 'Consult with a veterinarian for specific vaccination protocols.'},
]


def get_schedule(chick_type: str = 'layer') -> List[Dict]:
    if chick_type == 'broiler':
        return [entry for entry in VACCINATION_SCHEDULE if entry['day'] <= BROILER_LAST_DAY]
    return list(VACCINATION_SCHEDULE)


def get_upcoming(age: int, chick_type: str = 'layer') -> Dict[str, List[Dict]]:
    """Vaccinations still due after ``age`` days, plus the two most recent ones."""
    schedule = get_schedule(chick_type)
    return {
        'upcoming': [entry for entry in schedule if entry['day'] > age],
        'recent': [entry for entry in schedule if entry['day'] <= age][-2:],
    }
