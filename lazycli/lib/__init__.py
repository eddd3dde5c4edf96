"""Engine library: models, templates, execution, registry, items, protocol"""
