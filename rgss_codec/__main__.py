from rgss_codec.converter import main

main()
