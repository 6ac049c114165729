# Analyzer package - CRO signal models
#
# Kept free of eager imports: utils.parsing imports analyzer.errors, and the
# modeling modules import utils.parsing. Import from the submodules directly.
