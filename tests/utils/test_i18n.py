from mlp2to3.utils.i18n import Translator


def test_translator_passes_through_without_catalog(tmp_path):
    translate = Translator(localedir=tmp_path)

    assert translate("Network option") == "Network option"


def test_translator_fills_positional_placeholders():
    translate = Translator()

    assert translate('Network option "{0}" could not be updated', "x") == (
        'Network option "x" could not be updated'
    )
