from backend.app.services.alias_service import generate_default_aliases


def test_four_word_name():
    assert generate_default_aliases('Jesús David Magallanes Pérez') == [
        'JESUS DAVID MAGALLANES PEREZ',
        'JESUS PEREZ',
        'DAVID PEREZ',
        'PEREZ',
    ]


def test_particles_are_skipped():
    assert generate_default_aliases('maria de los angeles  rojas') == [
        'MARIA DE LOS ANGELES ROJAS',
        'MARIA ROJAS',
        'ANGELES ROJAS',
        'ROJAS',
    ]


def test_short_surname_and_two_words():
    assert generate_default_aliases('Ana Gil') == ['ANA GIL']
    assert generate_default_aliases('Luis Torres') == ['LUIS TORRES', 'TORRES']


def test_blank_name():
    assert generate_default_aliases('   ') == []
