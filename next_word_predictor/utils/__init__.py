# next_word_predictor/utils
# persistence, logging and config helpers used around the core
